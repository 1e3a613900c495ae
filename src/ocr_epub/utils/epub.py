"""
EPUB 3 packaging.

Builds an OCF container in memory:

    mimetype                  (stored, first entry)
    META-INF/container.xml
    OEBPS/content.opf
    OEBPS/nav.xhtml
    OEBPS/content.xhtml
    OEBPS/images/<id>
"""

import io
import logging
import re
import uuid
import zipfile
from datetime import datetime, timezone
from typing import Dict, List, Optional
from urllib.parse import quote

from .export import HtmlRenderer
from .io import escape_xml
from .models import ImageResource
from .paths import process_markdown_images
from .resources import media_type_for_format

logger = logging.getLogger(__name__)


EPUB_MIMETYPE = "application/epub+zip"
PACKAGE_PATH = "OEBPS/content.opf"
RESERVED_MANIFEST_IDS = {"content", "nav"}

CONTAINER_XML = f"""<?xml version="1.0" encoding="UTF-8"?>
<container version="1.0" xmlns="urn:oasis:names:tc:opendocument:xmlns:container">
  <rootfiles>
    <rootfile full-path="{PACKAGE_PATH}" media-type="application/oebps-package+xml"/>
  </rootfiles>
</container>"""

EPUB_STYLE = """
    body { font-family: serif; margin: 1em; line-height: 1.6; }
    img, svg { max-width: 100%; height: auto; }
    pre { background: #f5f5f5; padding: 1em; overflow-x: auto; white-space: pre-wrap; }
    code { background: #f5f5f5; padding: 0.2em; }
    table { border-collapse: collapse; width: 100%; }
    th, td { border: 1px solid #999; padding: 0.5em; }
    .math-display { text-align: center; margin: 1em 0; }
    .math-inline { vertical-align: middle; }
    .math-inline svg, .math-display svg { vertical-align: middle; }
"""


def format_timestamp(moment: datetime) -> str:
    """ISO-8601 UTC timestamp without fractional seconds."""
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%SZ")


def manifest_id(image_id: str, taken: Optional[set] = None) -> str:
    """
    Derive an XML-safe manifest id from an image id.

    Non-alphanumerics become underscores; ids that would not start with a
    letter, or that clash with ids in ``taken``, are adjusted.
    """
    safe = re.sub(r"[^A-Za-z0-9]", "_", image_id)
    if not safe[:1].isalpha():
        safe = f"img_{safe}"
    if taken is None:
        return safe
    candidate = safe
    counter = 2
    while candidate in taken or candidate in RESERVED_MANIFEST_IDS:
        candidate = f"{safe}_{counter}"
        counter += 1
    return candidate


# ============================================================================
# EPUB Builder
# ============================================================================

class EpubBuilder:
    """Assembles a single-chapter EPUB 3 book from markdown and images."""

    def __init__(
        self,
        title: str = "Document",
        language: str = "en",
        creator: str = "OCR EPUB",
        renderer: Optional[HtmlRenderer] = None,
        identifier: Optional[str] = None,
        modified: Optional[datetime] = None
    ):
        self.title = title
        self.language = language
        self.creator = creator
        self.renderer = renderer or HtmlRenderer()
        self.identifier = identifier or f"urn:uuid:{uuid.uuid4()}"
        self.modified = modified or datetime.now(timezone.utc)

    def build(self, markdown: Optional[str], images: Dict[str, ImageResource]) -> bytes:
        """
        Build the EPUB archive.

        Args:
            markdown: Raw markdown (image references are rewritten here)
            images: Image registry

        Returns:
            EPUB bytes
        """
        escaped_title = escape_xml(self.title)
        manifest_ids = self._manifest_ids(images)
        content = self._content_document(escaped_title, markdown)
        # Inline SVG must be declared on the manifest item
        content_properties = ["svg"] if "<svg" in content else []

        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            zf.writestr("mimetype", EPUB_MIMETYPE, compress_type=zipfile.ZIP_STORED)
            zf.writestr("META-INF/container.xml", CONTAINER_XML)
            zf.writestr(
                PACKAGE_PATH,
                self._package_document(escaped_title, images, manifest_ids, content_properties)
            )
            zf.writestr("OEBPS/nav.xhtml", self._nav_document(escaped_title))
            zf.writestr("OEBPS/content.xhtml", content)
            for image_id, image in images.items():
                zf.writestr(f"OEBPS/images/{image_id}", image.data)

        logger.debug(f"Built EPUB with {len(images)} image(s)")
        return buffer.getvalue()

    def _manifest_ids(self, images: Dict[str, ImageResource]) -> Dict[str, str]:
        taken: set = set()
        ids = {}
        for image_id in images:
            safe = manifest_id(image_id, taken)
            taken.add(safe)
            ids[image_id] = safe
        return ids

    def _package_document(
        self,
        escaped_title: str,
        images: Dict[str, ImageResource],
        manifest_ids: Dict[str, str],
        content_properties: Optional[List[str]] = None
    ) -> str:
        properties = ""
        if content_properties:
            properties = f' properties="{" ".join(content_properties)}"'

        image_items = []
        for image_id, image in images.items():
            href = escape_xml(quote(image_id, safe="/._-~"))
            image_items.append(
                f'    <item id="{manifest_ids[image_id]}" href="images/{href}" '
                f'media-type="{media_type_for_format(image.format)}"/>'
            )
        image_manifest = "\n".join(image_items)
        if image_manifest:
            image_manifest += "\n"

        return f"""<?xml version="1.0" encoding="UTF-8"?>
<package xmlns="http://www.idpf.org/2007/opf" version="3.0" unique-identifier="BookId">
  <metadata xmlns:dc="http://purl.org/dc/elements/1.1/">
    <dc:identifier id="BookId">{escape_xml(self.identifier)}</dc:identifier>
    <dc:title>{escaped_title}</dc:title>
    <dc:language>{escape_xml(self.language)}</dc:language>
    <dc:creator>{escape_xml(self.creator)}</dc:creator>
    <meta property="dcterms:modified">{format_timestamp(self.modified)}</meta>
  </metadata>
  <manifest>
    <item id="content" href="content.xhtml" media-type="application/xhtml+xml"{properties}/>
    <item id="nav" href="nav.xhtml" media-type="application/xhtml+xml" properties="nav"/>
{image_manifest}  </manifest>
  <spine>
    <itemref idref="content"/>
  </spine>
</package>"""

    def _nav_document(self, escaped_title: str) -> str:
        return f"""<?xml version="1.0" encoding="UTF-8"?>
<!DOCTYPE html>
<html xmlns="http://www.w3.org/1999/xhtml" xmlns:epub="http://www.idpf.org/2007/ops" xml:lang="{escape_xml(self.language)}">
<head>
  <title>Navigation</title>
</head>
<body>
  <nav epub:type="toc">
    <h1>Contents</h1>
    <ol>
      <li><a href="content.xhtml">{escaped_title}</a></li>
    </ol>
  </nav>
</body>
</html>"""

    def _content_document(self, escaped_title: str, markdown: Optional[str]) -> str:
        processed = process_markdown_images(markdown, "images/")
        body = self.renderer.render_body(processed)

        return f"""<?xml version="1.0" encoding="UTF-8"?>
<!DOCTYPE html>
<html xmlns="http://www.w3.org/1999/xhtml" xml:lang="{escape_xml(self.language)}">
<head>
  <title>{escaped_title}</title>
  <style>{EPUB_STYLE}  </style>
</head>
<body>
{body}
</body>
</html>"""


def generate_epub(
    markdown: Optional[str],
    images: Dict[str, ImageResource],
    title: str = "Document",
    renderer: Optional[HtmlRenderer] = None
) -> bytes:
    """Generate an EPUB e-book from raw markdown and the image registry."""
    return EpubBuilder(title=title, renderer=renderer).build(markdown, images)
