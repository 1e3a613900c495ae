"""
Data model for OCR results and conversion artifacts.

Provides:
- OCR result schema (OcrResult, Page, TableRef, ImageRef)
- Image registry entries (ImageResource)
- Conversion options (OcrOptions)
- Exception hierarchy for the conversion pipeline
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Dict, Any

logger = logging.getLogger(__name__)


# Version of the provider JSON contract understood by OcrResult.from_dict
OCR_SCHEMA_VERSION = "mistral-ocr/1"


# ============================================================================
# Exceptions
# ============================================================================

class ConversionError(RuntimeError):
    """Base class for errors that abort a document conversion."""


class OcrRequestError(ConversionError):
    """The OCR provider call failed or returned a non-success response."""


class PackagingError(ConversionError):
    """Rendering or archive serialization produced an invalid artifact."""


class UnresolvedPlaceholderError(PackagingError):
    """A math placeholder survived restoration."""


class PlaceholderCollisionError(PackagingError):
    """The source text already contains the math placeholder namespace."""


# ============================================================================
# OCR Result Schema
# ============================================================================

@dataclass
class TableRef:
    """A table extracted by the OCR provider, referenced by a link placeholder."""
    id: Optional[str] = None
    content: Optional[str] = None

    @property
    def placeholder(self) -> str:
        return f"[{self.id}]({self.id})"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TableRef":
        return cls(id=data.get("id"), content=data.get("content"))

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "content": self.content}


@dataclass
class ImageRef:
    """An image extracted by the OCR provider (base64 payload)."""
    id: Optional[str] = None
    data: Optional[str] = None

    @property
    def format(self) -> str:
        if not self.id or "." not in self.id:
            return ""
        return self.id.rsplit(".", 1)[-1].lower()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ImageRef":
        return cls(
            id=data.get("id") or data.get("name"),
            data=data.get("image_base64") or data.get("data")
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "image_base64": self.data}


@dataclass
class Page:
    """A single OCR page."""
    index: int = 0
    markdown: str = ""
    tables: List[TableRef] = field(default_factory=list)
    images: List[ImageRef] = field(default_factory=list)
    header: Optional[str] = None
    footer: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Page":
        return cls(
            index=int(data.get("index") or 0),
            markdown=data.get("markdown") or "",
            tables=[TableRef.from_dict(t) for t in data.get("tables") or [] if isinstance(t, dict)],
            images=[ImageRef.from_dict(i) for i in data.get("images") or [] if isinstance(i, dict)],
            header=data.get("header"),
            footer=data.get("footer")
        )

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "index": self.index,
            "markdown": self.markdown,
            "tables": [t.to_dict() for t in self.tables],
            "images": [i.to_dict() for i in self.images],
        }
        if self.header is not None:
            result["header"] = self.header
        if self.footer is not None:
            result["footer"] = self.footer
        return result


@dataclass
class OcrResult:
    """Structured OCR output, organized by page."""
    pages: List[Page] = field(default_factory=list)
    model: Optional[str] = None
    schema_version: str = OCR_SCHEMA_VERSION

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "OcrResult":
        """
        Parse a provider response.

        Every field is optional; unknown fields are ignored.

        Args:
            data: Decoded JSON response (or None)

        Returns:
            OcrResult instance (empty when data is missing)
        """
        if not data:
            return cls()

        pages = []
        for raw_page in data.get("pages") or []:
            if not isinstance(raw_page, dict):
                logger.warning(f"Skipping malformed page entry: {type(raw_page).__name__}")
                continue
            pages.append(Page.from_dict(raw_page))

        return cls(pages=pages, model=data.get("model"))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "schema_version": self.schema_version,
            "model": self.model,
            "pages": [p.to_dict() for p in self.pages]
        }


# ============================================================================
# Conversion Artifacts
# ============================================================================

@dataclass
class ImageResource:
    """Decoded image bytes stored in the image registry."""
    data: bytes
    format: str


@dataclass
class OcrOptions:
    """Options forwarded to the OCR provider."""
    exclude_headers: bool = False
    exclude_footers: bool = False

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "OcrOptions":
        data = data or {}
        return cls(
            exclude_headers=bool(data.get("exclude_headers", data.get("excludeHeaders", False))),
            exclude_footers=bool(data.get("exclude_footers", data.get("excludeFooters", False)))
        )
