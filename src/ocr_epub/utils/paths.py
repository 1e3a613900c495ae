"""
Image reference rewriting for markdown.
"""

import re
from typing import Optional

DEFAULT_IMAGE_PREFIX = "images/"

IMAGE_PATTERN = re.compile(r"!\[([^\]]*)\]\(([^)]+)\)")


def process_markdown_images(markdown: Optional[str], image_prefix: str = DEFAULT_IMAGE_PREFIX) -> str:
    """
    Prefix local image sources with the resource folder.

    Sources starting with ``http``, ``data:`` or the prefix itself are left
    alone, which makes the rewrite idempotent. Plain links are untouched.

    Args:
        markdown: Markdown content
        image_prefix: Folder prefix for image paths

    Returns:
        Updated markdown
    """
    if not markdown:
        return ""

    def _rewrite(match: re.Match) -> str:
        alt, src = match.group(1), match.group(2)
        if src.startswith(("http", "data:")) or src.startswith(image_prefix):
            return match.group(0)
        return f"![{alt}]({image_prefix}{src})"

    return IMAGE_PATTERN.sub(_rewrite, markdown)
