"""
Configuration and constants for the OCR EPUB pipeline.

This module provides:
- Global logging setup
- OCR API, rendering and EPUB settings
- API key storage providers
"""

import json
from abc import ABC, abstractmethod
import os
from dataclasses import dataclass, field
from typing import Optional, List, Dict
from pathlib import Path
import logging

# ============================================================================
# Logging Configuration
# ============================================================================

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger("ocr_epub")


# ============================================================================
# Constants
# ============================================================================

API_KEY_NAME = "MISTRAL_API_KEY"

DEFAULT_SETTINGS_PATH = Path(
    os.environ.get("XDG_CONFIG_HOME", str(Path.home() / ".config"))
) / "ocr_epub" / "settings.json"


# ============================================================================
# Processing Configuration
# ============================================================================

@dataclass
class OcrConfig:
    """OCR provider configuration."""
    api_url: str = "https://api.mistral.ai/v1/ocr"
    model: str = "mistral-ocr-latest"
    timeout: float = 300.0
    exclude_headers: bool = False
    exclude_footers: bool = False


@dataclass
class RenderConfig:
    """Markdown and math rendering configuration."""
    math_engine: str = "mathtext"  # mathtext, none
    inline_math: str = "anchored"  # anchored, strict, off
    math_font_size: float = 12.0
    image_prefix: str = "images/"
    markdown_extensions: List[str] = field(default_factory=lambda: [
        "tables", "fenced_code"
    ])


@dataclass
class EpubConfig:
    """EPUB metadata configuration."""
    language: str = "en"
    creator: str = "OCR EPUB"


@dataclass
class PipelineConfig:
    """Main pipeline configuration."""
    ocr: OcrConfig = field(default_factory=OcrConfig)
    render: RenderConfig = field(default_factory=RenderConfig)
    epub: EpubConfig = field(default_factory=EpubConfig)

    default_title: str = "Document"
    output_suffix: str = "-ocr.zip"
    debug_mode: bool = False


def get_config() -> PipelineConfig:
    """Get the default pipeline configuration with environment overrides."""
    config = PipelineConfig()

    if os.environ.get("OCR_EPUB_API_URL"):
        config.ocr.api_url = os.environ["OCR_EPUB_API_URL"]

    if os.environ.get("OCR_EPUB_MODEL"):
        config.ocr.model = os.environ["OCR_EPUB_MODEL"]

    if os.environ.get("OCR_EPUB_MATH_ENGINE"):
        config.render.math_engine = os.environ["OCR_EPUB_MATH_ENGINE"].lower()

    if os.environ.get("OCR_EPUB_INLINE_MATH"):
        config.render.inline_math = os.environ["OCR_EPUB_INLINE_MATH"].lower()

    if os.environ.get("OCR_EPUB_DEBUG", "").lower() == "true":
        config.debug_mode = True

    return config


# ============================================================================
# API Key Storage
# ============================================================================

class KeyStore(ABC):
    """Process-external storage for named settings such as the API key."""

    @abstractmethod
    def get(self, name: str = API_KEY_NAME) -> Optional[str]:
        """Return the stored value, or None when it is not set."""

    @abstractmethod
    def set(self, value: str, name: str = API_KEY_NAME) -> None:
        """Persist a value; read-only stores raise PermissionError."""


class EnvironmentKeyStore(KeyStore):
    """Read-only key store backed by environment variables."""

    def __init__(self, environ: Optional[Dict[str, str]] = None):
        self.environ = environ if environ is not None else os.environ

    def get(self, name: str = API_KEY_NAME) -> Optional[str]:
        return self.environ.get(name) or None

    def set(self, value: str, name: str = API_KEY_NAME) -> None:
        raise PermissionError("Environment key store is read-only")


class FileKeyStore(KeyStore):
    """Key store backed by a JSON settings file, written on every change."""

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path else DEFAULT_SETTINGS_PATH

    def _load(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Could not read settings from {self.path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def get(self, name: str = API_KEY_NAME) -> Optional[str]:
        return self._load().get(name) or None

    def set(self, value: str, name: str = API_KEY_NAME) -> None:
        data = self._load()
        data[name] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2)
        try:
            self.path.chmod(0o600)
        except OSError:
            logger.debug(f"Could not restrict permissions on {self.path}")
        logger.info(f"Saved {name} to {self.path}")


class ChainedKeyStore(KeyStore):
    """Reads from the first store that has a value; writes to the writable one."""

    def __init__(self, *stores: KeyStore, writable: Optional[KeyStore] = None):
        self.stores = list(stores)
        self.writable = writable

    def get(self, name: str = API_KEY_NAME) -> Optional[str]:
        for store in self.stores:
            value = store.get(name)
            if value:
                return value
        return None

    def set(self, value: str, name: str = API_KEY_NAME) -> None:
        if self.writable is None:
            raise PermissionError("No writable key store configured")
        self.writable.set(value, name)


def default_key_store(settings_path: Optional[Path] = None) -> KeyStore:
    """Environment first, then the settings file (which receives updates)."""
    file_store = FileKeyStore(settings_path)
    return ChainedKeyStore(EnvironmentKeyStore(), file_store, writable=file_store)
