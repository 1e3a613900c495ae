"""
Page combination for OCR results.

Merges ordered pages into a single markdown document.
"""

import logging
from typing import List, Optional

from .models import OcrResult, Page
from .tables import inline_table_content

logger = logging.getLogger(__name__)


# Horizontal rule between pages so renderers keep each page a distinct block
PAGE_SEPARATOR = "\n\n---\n\n"


def sort_pages(pages: List[Page]) -> List[Page]:
    """Order pages by index; ties keep their arrival order."""
    return sorted(pages, key=lambda p: p.index)


def combine_markdown(ocr_result: Optional[OcrResult]) -> str:
    """
    Combine all pages into a single markdown document.

    Tables are inlined per page before joining so a page's tables never
    leak into another page that happens to share a table id.

    Args:
        ocr_result: Parsed OCR result

    Returns:
        Combined markdown ('' when there are no pages)
    """
    if ocr_result is None or not ocr_result.pages:
        return ""

    pages = sort_pages(ocr_result.pages)
    logger.debug(f"Combining {len(pages)} page(s)")
    return PAGE_SEPARATOR.join(
        inline_table_content(page.markdown or "", page.tables)
        for page in pages
    )
