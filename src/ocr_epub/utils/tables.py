"""
Table inlining for OCR pages.

The OCR provider returns tables as separate markdown fragments and leaves a
link placeholder ``[tbl-0.md](tbl-0.md)`` in the page text where each table
belongs. This module swaps those placeholders for the table content.
"""

import logging
from typing import List, Optional

from .models import TableRef

logger = logging.getLogger(__name__)


def inline_table_content(markdown: str, tables: Optional[List[TableRef]]) -> str:
    """
    Replace table link placeholders with the table markdown.

    Tables missing an id or content are ignored, and a table whose
    placeholder does not occur in the text is not an error.

    Args:
        markdown: Page markdown
        tables: Tables extracted from the same page

    Returns:
        Markdown with tables inlined
    """
    if not markdown or not tables:
        return markdown

    result = markdown
    for table in tables:
        if not table.id or not table.content:
            continue
        placeholder = table.placeholder
        if placeholder in result:
            result = result.replace(placeholder, table.content)
        else:
            logger.debug(f"No placeholder found for table {table.id}")
    return result
