"""
Utility modules for the OCR EPUB pipeline.
"""

from .models import (
    OcrResult, Page, TableRef, ImageRef, ImageResource, OcrOptions,
    ConversionError, OcrRequestError, PackagingError,
    UnresolvedPlaceholderError, PlaceholderCollisionError,
)
from .io import base64_to_bytes, bytes_to_base64, escape_xml, get_mime_type, get_document_type
from .resources import extract_images, media_type_for_format
from .tables import inline_table_content
from .pages import combine_markdown, PAGE_SEPARATOR
from .paths import process_markdown_images
from .math_render import InlineMathPolicy, MathBlock, MathRenderer, extract_math_blocks, restore_math_blocks
from .export import HtmlRenderer, generate_html, render_markdown_body
from .epub import EpubBuilder, generate_epub
from .assembler import DocumentAssembler, OutputBundle, assemble_output, output_name_for
from .ocr_client import MistralOcrClient, perform_ocr

__all__ = [
    # Models
    "OcrResult", "Page", "TableRef", "ImageRef", "ImageResource", "OcrOptions",
    "ConversionError", "OcrRequestError", "PackagingError",
    "UnresolvedPlaceholderError", "PlaceholderCollisionError",
    # IO
    "base64_to_bytes", "bytes_to_base64", "escape_xml", "get_mime_type", "get_document_type",
    # Extraction and combination
    "extract_images", "media_type_for_format", "inline_table_content",
    "combine_markdown", "PAGE_SEPARATOR", "process_markdown_images",
    # Math
    "InlineMathPolicy", "MathBlock", "MathRenderer", "extract_math_blocks", "restore_math_blocks",
    # Rendering and packaging
    "HtmlRenderer", "generate_html", "render_markdown_body",
    "EpubBuilder", "generate_epub",
    # Assembly
    "DocumentAssembler", "OutputBundle", "assemble_output", "output_name_for",
    # OCR
    "MistralOcrClient", "perform_ocr",
]
