"""
Output assembler for the OCR EPUB pipeline.

Provides:
- Output bundle data model
- Pipeline orchestration (OCR result -> markdown, HTML, EPUB, images)
- Final archive serialization
"""

import io
import logging
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union, Any

from .epub import EpubBuilder
from .export import HtmlRenderer
from .io import derive_title
from .math_render import MathRenderer
from .models import ImageResource, OcrOptions, OcrResult
from .pages import combine_markdown
from .paths import process_markdown_images
from .resources import extract_images

logger = logging.getLogger(__name__)


# ============================================================================
# Data Classes
# ============================================================================

@dataclass
class OutputBundle:
    """All artifacts of one conversion, ready to be archived."""
    title: str
    markdown: str
    html: str
    epub: bytes
    images: Dict[str, ImageResource] = field(default_factory=dict)

    def entries(self) -> List[Tuple[str, Union[str, bytes]]]:
        """Archive entries in write order."""
        entries: List[Tuple[str, Union[str, bytes]]] = [
            ("content.md", self.markdown),
            ("content.html", self.html),
        ]
        for image_id, image in self.images.items():
            entries.append((f"images/{image_id}", image.data))
        entries.append(("content.epub", self.epub))
        return entries

    def to_zip(self) -> bytes:
        """Serialize the bundle as a compressed archive."""
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            for name, data in self.entries():
                zf.writestr(name, data)
        return buffer.getvalue()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "markdown_chars": len(self.markdown),
            "html_chars": len(self.html),
            "epub_bytes": len(self.epub),
            "images": sorted(self.images)
        }


# ============================================================================
# Document Assembler
# ============================================================================

class DocumentAssembler:
    """
    Orchestrates the conversion pipeline.

    Coordinates:
    - Resource extraction and page combination
    - Reference rewriting
    - HTML rendering
    - EPUB packaging
    - Archive assembly
    """

    def __init__(
        self,
        config: Optional[Any] = None,
        math_renderer: Optional[MathRenderer] = None,
        ocr_client: Optional[Any] = None
    ):
        if config is None:
            from ..config import get_config
            config = get_config()
        self.config = config
        self._math_renderer = math_renderer
        self._html_renderer = None
        self._ocr_client = ocr_client

    @property
    def math_renderer(self) -> MathRenderer:
        if self._math_renderer is None:
            self._math_renderer = MathRenderer(
                engine=self.config.render.math_engine,
                font_size=self.config.render.math_font_size
            )
        return self._math_renderer

    @property
    def html_renderer(self) -> HtmlRenderer:
        if self._html_renderer is None:
            self._html_renderer = HtmlRenderer(
                math_renderer=self.math_renderer,
                inline_math=self.config.render.inline_math,
                extensions=self.config.render.markdown_extensions
            )
        return self._html_renderer

    @property
    def ocr_client(self):
        if self._ocr_client is None:
            from .ocr_client import MistralOcrClient
            self._ocr_client = MistralOcrClient(
                api_url=self.config.ocr.api_url,
                model=self.config.ocr.model,
                timeout=self.config.ocr.timeout
            )
        return self._ocr_client

    def build_bundle(
        self,
        ocr_result: Union[OcrResult, Dict[str, Any], None],
        original_name: Optional[str] = None
    ) -> OutputBundle:
        """
        Run the conversion and collect every output artifact.

        Args:
            ocr_result: Parsed OCR result or raw provider dict
            original_name: Original file name (title source)

        Returns:
            OutputBundle
        """
        if not isinstance(ocr_result, OcrResult):
            ocr_result = OcrResult.from_dict(ocr_result)

        title = derive_title(original_name, self.config.default_title)
        raw_markdown = combine_markdown(ocr_result)
        images = extract_images(ocr_result)
        markdown = process_markdown_images(raw_markdown, self.config.render.image_prefix)

        logger.info(
            f"Assembling '{title}': {len(ocr_result.pages)} page(s), {len(images)} image(s)"
        )

        html = self.html_renderer.render_document(markdown, title)

        # The EPUB builder rewrites image references itself
        epub = EpubBuilder(
            title=title,
            language=self.config.epub.language,
            creator=self.config.epub.creator,
            renderer=self.html_renderer
        ).build(raw_markdown, images)

        return OutputBundle(
            title=title,
            markdown=markdown,
            html=html,
            epub=epub,
            images=images
        )

    def assemble_output(
        self,
        ocr_result: Union[OcrResult, Dict[str, Any], None],
        original_name: Optional[str] = None,
        options: Optional[OcrOptions] = None
    ) -> bytes:
        """
        Produce the final archive for an OCR result.

        ``options`` only affect the OCR call and are accepted for interface
        symmetry with convert_file.

        Returns:
            ZIP archive bytes
        """
        bundle = self.build_bundle(ocr_result, original_name)
        archive = bundle.to_zip()
        logger.info(f"Created archive ({len(archive)} bytes)")
        return archive

    def convert_file(
        self,
        input_path: Union[str, Path],
        api_key: Optional[str],
        options: Optional[OcrOptions] = None
    ) -> bytes:
        """
        OCR a document file and assemble its output archive.

        Raises:
            FileNotFoundError: If the input doesn't exist
            OcrRequestError: If the OCR call fails
        """
        input_path = Path(input_path)
        if not input_path.exists():
            raise FileNotFoundError(f"Input file not found: {input_path}")

        if options is None:
            options = OcrOptions(
                exclude_headers=self.config.ocr.exclude_headers,
                exclude_footers=self.config.ocr.exclude_footers
            )

        ocr_result = self.ocr_client.perform_ocr(
            input_path.read_bytes(), input_path.name, api_key, options
        )
        return self.assemble_output(ocr_result, input_path.name, options)


def output_name_for(file_name: str, suffix: str = "-ocr.zip") -> str:
    """Archive name for a source document, e.g. ``paper.pdf`` -> ``paper-ocr.zip``."""
    return derive_title(file_name, "document") + suffix


def assemble_output(
    ocr_result: Union[OcrResult, Dict[str, Any], None],
    original_name: Optional[str] = None,
    options: Optional[OcrOptions] = None
) -> bytes:
    """Produce the final archive with the default configuration."""
    return DocumentAssembler().assemble_output(ocr_result, original_name, options)
