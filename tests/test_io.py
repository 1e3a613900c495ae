"""
Tests for I/O helpers: base64, file types, escaping and JSON.
"""

import pytest
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from ocr_epub.utils.io import (
    base64_to_bytes,
    bytes_to_base64,
    derive_title,
    escape_xml,
    get_document_type,
    get_mime_type,
    load_json,
    save_json,
)


class TestBase64:
    """Tests for base64 encoding and decoding."""

    def test_encodes_text(self):
        """Test encoding matches the standard alphabet with padding."""
        assert bytes_to_base64(b"Hello, World!") == "SGVsbG8sIFdvcmxkIQ=="

    @pytest.mark.parametrize("payload", [b"", b"\x00\xff" * 10, bytes(range(256))])
    def test_round_trip(self, payload):
        """Test decoding our own encoding reproduces the bytes."""
        assert base64_to_bytes(bytes_to_base64(payload)) == payload

    def test_data_uri_prefix_is_stripped(self):
        """Test data URIs decode to their payload."""
        assert base64_to_bytes("data:image/png;base64,SGVsbG8=") == b"Hello"

    def test_invalid_padding_raises(self):
        """Test malformed payloads raise ValueError."""
        with pytest.raises(ValueError):
            base64_to_bytes("abc")


class TestFileTypes:
    """Tests for MIME and document type detection."""

    def test_mime_types(self):
        assert get_mime_type("test.pdf") == "application/pdf"
        assert get_mime_type("test.png") == "image/png"
        assert get_mime_type("test.jpg") == "image/jpeg"
        assert get_mime_type("test.JPEG") == "image/jpeg"
        assert get_mime_type("test.unknown") == "application/octet-stream"
        assert get_mime_type("noextension") == "application/octet-stream"

    def test_document_types(self):
        assert get_document_type("test.pdf") == "document_url"
        assert get_document_type("test.docx") == "document_url"
        assert get_document_type("test.png") == "image_url"
        assert get_document_type("test.jpg") == "image_url"
        assert get_document_type("test.webp") == "image_url"

    def test_derive_title(self):
        """Test the last extension is stripped with a fallback title."""
        assert derive_title("report.pdf") == "report"
        assert derive_title("archive.tar.gz") == "archive.tar"
        assert derive_title("/tmp/scan.png") == "scan"
        assert derive_title(".pdf") == "Document"
        assert derive_title("") == "Document"
        assert derive_title(None, "Untitled") == "Untitled"


class TestEscapeXml:
    """Tests for XML escaping."""

    def test_plain_text_unchanged(self):
        assert escape_xml("Hello") == "Hello"
        assert escape_xml("naïve – ünïcode") == "naïve – ünïcode"

    def test_special_characters(self):
        assert escape_xml("<div>") == "&lt;div&gt;"
        assert escape_xml("&") == "&amp;"
        assert escape_xml('"quoted"') == "&quot;quoted&quot;"
        assert escape_xml("it's") == "it&apos;s"

    def test_ampersand_escaped_once(self):
        assert escape_xml("&lt;") == "&amp;lt;"

    def test_empty_input(self):
        assert escape_xml("") == ""
        assert escape_xml(None) == ""


class TestJson:
    """Tests for JSON helpers."""

    def test_save_and_load(self, tmp_path):
        path = save_json({"pages": [], "blob": b"\x01\x02"}, tmp_path / "nested" / "out.json")
        data = load_json(path)
        assert data["pages"] == []
        assert base64_to_bytes(data["blob"]) == b"\x01\x02"

    def test_load_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_json(tmp_path / "missing.json")
