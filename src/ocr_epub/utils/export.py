"""
HTML export for the OCR EPUB pipeline.

Provides:
- Markdown to HTML body conversion with math protection
- Standalone HTML document generation
"""

import logging
from typing import List, Optional, Union

import markdown as md_lib

from .io import escape_xml
from .math_render import (
    InlineMathPolicy,
    MathRenderer,
    extract_math_blocks,
    restore_math_blocks,
)

logger = logging.getLogger(__name__)


DEFAULT_EXTENSIONS = ["tables", "fenced_code"]

HTML_STYLE = """
    body {
      font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", Roboto, sans-serif;
      max-width: 800px;
      margin: 0 auto;
      padding: 2rem;
      line-height: 1.6;
    }
    img, svg { max-width: 100%; height: auto; }
    pre { background: #f5f5f5; padding: 1rem; overflow-x: auto; }
    code { background: #f5f5f5; padding: 0.2em 0.4em; }
    table { border-collapse: collapse; width: 100%; margin: 1rem 0; }
    th, td { border: 1px solid #ddd; padding: 0.5rem; text-align: left; }
    th { background: #f5f5f5; }
    hr { margin: 2rem 0; border: none; border-top: 1px solid #ddd; }
    blockquote { border-left: 4px solid #ddd; margin: 1rem 0; padding-left: 1rem; color: #666; }
    .math-display { text-align: center; margin: 1rem 0; }
    .math-inline { vertical-align: middle; }
    .math-inline svg, .math-display svg { vertical-align: middle; }
    @media print {
      body { max-width: none; padding: 0; }
      pre { white-space: pre-wrap; }
      hr { page-break-after: always; border: none; }
    }
"""


# ============================================================================
# HTML Renderer
# ============================================================================

class HtmlRenderer:
    """Converts markdown to HTML, keeping math intact through the conversion."""

    def __init__(
        self,
        math_renderer: Optional[MathRenderer] = None,
        inline_math: Union[InlineMathPolicy, str] = InlineMathPolicy.ANCHORED,
        extensions: Optional[List[str]] = None
    ):
        self.math_renderer = math_renderer if math_renderer is not None else MathRenderer()
        self.inline_math = InlineMathPolicy(inline_math)
        self.extensions = list(extensions) if extensions is not None else list(DEFAULT_EXTENSIONS)

    def render_body(self, markdown: Optional[str]) -> str:
        """
        Protect math, convert markdown, then restore math as rendered markup.

        Args:
            markdown: Markdown content

        Returns:
            HTML fragment
        """
        safe_markdown, blocks = extract_math_blocks(markdown or "", self.inline_math)
        html_content = md_lib.markdown(safe_markdown, extensions=self.extensions)
        logger.debug(f"Rendered markdown with {len(blocks)} math block(s)")
        return restore_math_blocks(html_content, blocks, self.math_renderer)

    def render_document(self, markdown: Optional[str], title: str = "Document") -> str:
        """Render a complete, styled HTML5 document."""
        body = self.render_body(markdown)
        escaped_title = escape_xml(title)

        return f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{escaped_title}</title>
  <style>{HTML_STYLE}  </style>
</head>
<body>
{body}
</body>
</html>"""


def render_markdown_body(markdown: Optional[str], renderer: Optional[HtmlRenderer] = None) -> str:
    """Convert markdown to an HTML fragment with math protection."""
    return (renderer or HtmlRenderer()).render_body(markdown)


def generate_html(
    markdown: Optional[str],
    title: str = "Document",
    renderer: Optional[HtmlRenderer] = None
) -> str:
    """Generate a standalone HTML document from markdown."""
    return (renderer or HtmlRenderer()).render_document(markdown, title)
