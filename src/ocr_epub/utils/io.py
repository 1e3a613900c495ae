"""
I/O utilities for the OCR EPUB pipeline.

Handles:
- Base64 encoding/decoding of binary payloads
- File type and MIME type detection
- XML/HTML escaping
- JSON serialization
- Directory management
"""

import base64
import json
import logging
from pathlib import Path
from typing import Union, Optional, Any
from dataclasses import asdict

logger = logging.getLogger(__name__)


IMAGE_EXTENSIONS = ("png", "jpg", "jpeg", "gif", "webp", "tiff", "bmp", "avif", "heic", "heif")

MIME_TYPES = {
    "pdf": "application/pdf",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "pptx": "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    "txt": "text/plain",
    "epub": "application/epub+zip",
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "gif": "image/gif",
    "webp": "image/webp",
    "tiff": "image/tiff",
    "bmp": "image/bmp",
    "avif": "image/avif",
    "heic": "image/heic",
    "heif": "image/heif",
}


# ============================================================================
# Base64
# ============================================================================

def bytes_to_base64(data: bytes) -> str:
    """Encode raw bytes as an ASCII base64 string."""
    return base64.b64encode(data).decode("ascii")


def base64_to_bytes(value: str) -> bytes:
    """
    Decode a base64 string, tolerating a ``data:...;base64,`` prefix.

    Args:
        value: Base64 text or data URI

    Returns:
        Decoded bytes

    Raises:
        ValueError: If the payload is not valid base64
    """
    payload = value.split(",", 1)[1] if "," in value else value
    return base64.b64decode(payload)


# ============================================================================
# File Type Detection
# ============================================================================

def _extension(file_name: str) -> str:
    return file_name.rsplit(".", 1)[-1].lower() if "." in file_name else ""


def get_mime_type(file_name: str) -> str:
    """Get the MIME type for a file name, defaulting to application/octet-stream."""
    return MIME_TYPES.get(_extension(file_name), "application/octet-stream")


def get_document_type(file_name: str) -> str:
    """
    Determine the OCR document type for a file name.

    Returns:
        'image_url' for image files, 'document_url' otherwise
    """
    return "image_url" if _extension(file_name) in IMAGE_EXTENSIONS else "document_url"


def derive_title(file_name: Optional[str], default: str = "Document") -> str:
    """Strip the last extension from a file name to use it as a title."""
    if not file_name:
        return default
    name = Path(file_name).name
    stem = name.rsplit(".", 1)[0] if "." in name else name
    return stem or default


# ============================================================================
# Escaping
# ============================================================================

def escape_xml(value: Optional[str]) -> str:
    """
    Escape XML special characters.

    Maps ``& < > " '`` to their named entities; everything else passes
    through. Empty or None input yields an empty string.
    """
    if not value:
        return ""
    return (
        value.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
        .replace("'", "&apos;")
    )


# ============================================================================
# JSON Serialization
# ============================================================================

class EnhancedJSONEncoder(json.JSONEncoder):
    """JSON encoder that handles dataclasses, bytes and paths."""

    def default(self, obj):
        if hasattr(obj, "to_dict"):
            return obj.to_dict()
        if hasattr(obj, "__dataclass_fields__"):
            return asdict(obj)
        if isinstance(obj, bytes):
            return bytes_to_base64(obj)
        if isinstance(obj, Path):
            return str(obj)
        return super().default(obj)


def save_json(
    data: Any,
    output_path: Union[str, Path],
    indent: int = 2,
    ensure_ascii: bool = False
) -> Path:
    """
    Save data to a JSON file.

    Args:
        data: Data to serialize (dict, list, dataclass, etc.)
        output_path: Path to save the JSON file
        indent: Indentation level for pretty printing
        ensure_ascii: If True, escape non-ASCII characters

    Returns:
        Path to the saved file
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, 'w', encoding='utf-8') as f:
        json.dump(data, f, indent=indent, ensure_ascii=ensure_ascii, cls=EnhancedJSONEncoder)

    logger.debug(f"Saved JSON: {output_path}")
    return output_path


def load_json(json_path: Union[str, Path]) -> Any:
    """
    Load data from a JSON file.

    Raises:
        FileNotFoundError: If the file doesn't exist
    """
    json_path = Path(json_path)
    if not json_path.exists():
        raise FileNotFoundError(f"JSON file not found: {json_path}")

    with open(json_path, 'r', encoding='utf-8') as f:
        return json.load(f)


# ============================================================================
# Directory Management
# ============================================================================

def ensure_dir(path: Union[str, Path]) -> Path:
    """Ensure a directory exists, creating it if necessary."""
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    return path


def write_bytes(data: bytes, output_path: Union[str, Path]) -> Path:
    """Write bytes to a file, creating parent directories."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_bytes(data)
    logger.debug(f"Wrote {len(data)} bytes to {output_path}")
    return output_path
