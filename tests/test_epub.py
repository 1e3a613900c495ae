"""
Tests for EPUB packaging.
"""

import io
import pytest
import sys
import zipfile
import xml.etree.ElementTree as ET
from datetime import datetime, timezone, timedelta
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from ocr_epub.utils.epub import EpubBuilder, format_timestamp, generate_epub, manifest_id
from ocr_epub.utils.export import HtmlRenderer
from ocr_epub.utils.math_render import MathRenderer
from ocr_epub.utils.models import ImageResource

OPF_NS = {"opf": "http://www.idpf.org/2007/opf", "dc": "http://purl.org/dc/elements/1.1/"}


@pytest.fixture
def images():
    return {
        "img-0.png": ImageResource(data=b"\x89PNG fake", format="png"),
        "img-1.jpeg": ImageResource(data=b"\xff\xd8 fake", format="jpeg"),
    }


@pytest.fixture
def epub_bytes(images):
    builder = EpubBuilder(
        title="Notes & <Draft>",
        renderer=HtmlRenderer(math_renderer=MathRenderer(engine="none")),
        identifier="urn:uuid:00000000-0000-4000-8000-000000000000",
        modified=datetime(2024, 1, 2, 3, 4, 5, 678000, tzinfo=timezone.utc)
    )
    markdown = "# Heading\n\n![img-0.png](img-0.png)\n\nInline $x_1$.\n\n![remote](https://example.com/r.png)"
    return builder.build(markdown, images)


class TestContainer:
    """Tests for the OCF container layout."""

    def test_mimetype_first_and_stored(self, epub_bytes):
        with zipfile.ZipFile(io.BytesIO(epub_bytes)) as zf:
            first = zf.infolist()[0]
            assert first.filename == "mimetype"
            assert first.compress_type == zipfile.ZIP_STORED
            assert zf.read("mimetype") == b"application/epub+zip"

    def test_mimetype_raw_bytes(self, epub_bytes):
        """Test the local header is followed directly by the name and content."""
        assert epub_bytes[:4] == b"PK\x03\x04"
        assert epub_bytes[30:38] == b"mimetype"
        assert epub_bytes[38:58] == b"application/epub+zip"

    def test_entry_order(self, epub_bytes):
        with zipfile.ZipFile(io.BytesIO(epub_bytes)) as zf:
            assert zf.namelist() == [
                "mimetype",
                "META-INF/container.xml",
                "OEBPS/content.opf",
                "OEBPS/nav.xhtml",
                "OEBPS/content.xhtml",
                "OEBPS/images/img-0.png",
                "OEBPS/images/img-1.jpeg",
            ]

    def test_container_points_at_package(self, epub_bytes):
        with zipfile.ZipFile(io.BytesIO(epub_bytes)) as zf:
            root = ET.fromstring(zf.read("META-INF/container.xml"))
        ns = {"c": "urn:oasis:names:tc:opendocument:xmlns:container"}
        rootfile = root.find(".//c:rootfile", ns)
        assert rootfile.attrib["full-path"] == "OEBPS/content.opf"
        assert rootfile.attrib["media-type"] == "application/oebps-package+xml"

    def test_image_bytes(self, epub_bytes, images):
        with zipfile.ZipFile(io.BytesIO(epub_bytes)) as zf:
            assert zf.read("OEBPS/images/img-0.png") == images["img-0.png"].data
            assert zf.read("OEBPS/images/img-1.jpeg") == images["img-1.jpeg"].data


class TestPackageDocument:
    """Tests for content.opf."""

    @pytest.fixture
    def opf(self, epub_bytes):
        with zipfile.ZipFile(io.BytesIO(epub_bytes)) as zf:
            return ET.fromstring(zf.read("OEBPS/content.opf"))

    def test_metadata(self, opf):
        assert opf.attrib["version"] == "3.0"
        assert opf.find(".//dc:identifier", OPF_NS).text == "urn:uuid:00000000-0000-4000-8000-000000000000"
        assert opf.find(".//dc:title", OPF_NS).text == "Notes & <Draft>"
        assert opf.find(".//dc:language", OPF_NS).text == "en"
        assert opf.find(".//dc:creator", OPF_NS).text == "OCR EPUB"
        modified = opf.find(".//opf:meta[@property='dcterms:modified']", OPF_NS)
        assert modified.text == "2024-01-02T03:04:05Z"

    def test_manifest(self, opf):
        items = {i.attrib["id"]: i.attrib for i in opf.findall(".//opf:manifest/opf:item", OPF_NS)}
        assert items["content"]["href"] == "content.xhtml"
        assert items["nav"]["properties"] == "nav"
        assert items["img_0_png"] == {"id": "img_0_png", "href": "images/img-0.png", "media-type": "image/png"}
        assert items["img_1_jpeg"]["media-type"] == "image/jpeg"

    def test_spine(self, opf):
        refs = [r.attrib["idref"] for r in opf.findall(".//opf:spine/opf:itemref", OPF_NS)]
        assert refs == ["content"]

    def test_random_identifier(self, images):
        """Test each book gets its own identifier by default."""
        renderer = HtmlRenderer(math_renderer=MathRenderer(engine="none"))
        first = EpubBuilder(renderer=renderer).identifier
        second = EpubBuilder(renderer=renderer).identifier
        assert first.startswith("urn:uuid:")
        assert first != second


class TestDocuments:
    """Tests for nav.xhtml and content.xhtml."""

    def test_nav(self, epub_bytes):
        with zipfile.ZipFile(io.BytesIO(epub_bytes)) as zf:
            nav = zf.read("OEBPS/nav.xhtml").decode("utf-8")
        ET.fromstring(nav.encode("utf-8"))
        assert 'epub:type="toc"' in nav
        assert '<a href="content.xhtml">Notes &amp; &lt;Draft&gt;</a>' in nav

    def test_content(self, epub_bytes):
        with zipfile.ZipFile(io.BytesIO(epub_bytes)) as zf:
            content = zf.read("OEBPS/content.xhtml").decode("utf-8")
        ET.fromstring(content.encode("utf-8"))
        assert "<title>Notes &amp; &lt;Draft&gt;</title>" in content
        assert 'src="images/img-0.png"' in content
        assert 'src="https://example.com/r.png"' in content
        assert "$x_1$" in content
        assert "font-family: serif" in content
        assert "white-space: pre-wrap" in content

    def test_generate_epub_without_images(self):
        data = generate_epub("", {}, renderer=HtmlRenderer(math_renderer=MathRenderer(engine="none")))
        with zipfile.ZipFile(io.BytesIO(data)) as zf:
            assert zf.namelist()[0] == "mimetype"
            assert "<dc:title>Document</dc:title>" in zf.read("OEBPS/content.opf").decode("utf-8")


class TestHelpers:
    """Tests for manifest ids and timestamps."""

    def test_manifest_id(self):
        assert manifest_id("img-0.jpeg") == "img_0_jpeg"
        assert manifest_id("0.png") == "img_0_png"
        assert manifest_id("a.png", {"a_png"}) == "a_png_2"
        assert manifest_id("content", set()) == "content_2"

    def test_manifest_ids_unique(self):
        renderer = HtmlRenderer(math_renderer=MathRenderer(engine="none"))
        images = {
            "a.png": ImageResource(b"1", "png"),
            "a_png": ImageResource(b"2", "png"),
        }
        data = EpubBuilder(renderer=renderer).build("", images)
        with zipfile.ZipFile(io.BytesIO(data)) as zf:
            opf = ET.fromstring(zf.read("OEBPS/content.opf"))
        ids = [i.attrib["id"] for i in opf.findall(".//opf:manifest/opf:item", OPF_NS)]
        assert len(ids) == len(set(ids))

    def test_timestamp_truncates_and_converts(self):
        moment = datetime(2024, 5, 6, 9, 8, 7, 999999, tzinfo=timezone(timedelta(hours=2)))
        assert format_timestamp(moment) == "2024-05-06T07:08:07Z"


class TestRenderedMath:
    """Tests for EPUBs whose math is drawn as inline SVG."""

    @pytest.fixture
    def math_epub(self):
        pytest.importorskip("matplotlib")
        builder = EpubBuilder(renderer=HtmlRenderer(math_renderer=MathRenderer(engine="mathtext")))
        return builder.build("Let $x^2$ and $y_1$ hold.\n\n$$a+b$$", {})

    def test_content_declares_svg(self, math_epub):
        with zipfile.ZipFile(io.BytesIO(math_epub)) as zf:
            opf = ET.fromstring(zf.read("OEBPS/content.opf"))
        item = opf.find(".//opf:manifest/opf:item[@id='content']", OPF_NS)
        assert item.attrib["properties"] == "svg"

    def test_content_ids_unique(self, math_epub):
        with zipfile.ZipFile(io.BytesIO(math_epub)) as zf:
            root = ET.fromstring(zf.read("OEBPS/content.xhtml"))

        svgs = root.findall(".//{http://www.w3.org/2000/svg}svg")
        assert len(svgs) == 3
        ids = [el.get("id") for el in root.iter() if el.get("id")]
        assert ids
        assert len(ids) == len(set(ids))

    def test_plain_content_has_no_properties(self, epub_bytes):
        with zipfile.ZipFile(io.BytesIO(epub_bytes)) as zf:
            opf = ET.fromstring(zf.read("OEBPS/content.opf"))
        item = opf.find(".//opf:manifest/opf:item[@id='content']", OPF_NS)
        assert "properties" not in item.attrib
