"""
Math protection and rendering for markdown conversion.

Provides:
- Extraction of $$...$$ and $...$ math into placeholder tokens
- Explicit, independently testable inline-math detection policies
- LaTeX to SVG rendering (matplotlib mathtext) with source fallback
- Restoration of rendered math into converted HTML
"""

import html
import io
import logging
import re
import threading
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

from .models import PlaceholderCollisionError, UnresolvedPlaceholderError

logger = logging.getLogger(__name__)


PLACEHOLDER_NAMESPACE = "%%OCREPUB-MATH-"
PLACEHOLDER_PATTERN = re.compile(r"%%OCREPUB-MATH-(?:DISPLAY|INLINE)-\d+%%")

# Display math may span lines
DISPLAY_MATH_PATTERN = re.compile(r"\$\$([\s\S]+?)\$\$")
# Inline math stays on one line; the opening $ follows whitespace or start of text
INLINE_MATH_PATTERN = re.compile(r"(?:^|(?<=\s))\$([^$\n]+)\$")

SVG_ID_PATTERN = re.compile(r'\bid="([^"]+)"')


# ============================================================================
# Data Classes
# ============================================================================

class InlineMathPolicy(str, Enum):
    """How single-dollar spans are told apart from currency."""
    ANCHORED = "anchored"  # opening $ preceded by whitespace or start of text
    STRICT = "strict"      # ANCHORED plus pandoc's tex_math_dollars rules
    OFF = "off"            # never treat single dollars as math


@dataclass
class MathBlock:
    """A math expression replaced by a placeholder during conversion."""
    placeholder: str
    expression: str
    display: bool = False

    @property
    def source(self) -> str:
        """Original dollar-delimited syntax."""
        delimiter = "$$" if self.display else "$"
        return f"{delimiter}{self.expression}{delimiter}"


# ============================================================================
# Detection
# ============================================================================

def _passes_strict_rules(raw: str, following: str) -> bool:
    if not raw.strip() or raw[0].isspace() or raw[-1].isspace():
        return False
    return not following.isdigit()


def detect_inline_math(
    text: str,
    policy: InlineMathPolicy = InlineMathPolicy.ANCHORED
) -> List[Tuple[int, int, str]]:
    """
    Find inline math spans.

    Args:
        text: Text to scan (display math should already be removed)
        policy: Detection policy

    Returns:
        List of (start, end, expression) tuples, expression trimmed
    """
    policy = InlineMathPolicy(policy)
    if policy is InlineMathPolicy.OFF or not text:
        return []

    spans = []
    for match in INLINE_MATH_PATTERN.finditer(text):
        raw = match.group(1)
        if policy is InlineMathPolicy.STRICT:
            following = text[match.end():match.end() + 1]
            if not _passes_strict_rules(raw, following):
                continue
        spans.append((match.start(), match.end(), raw.strip()))
    return spans


def extract_math_blocks(
    markdown: str,
    policy: InlineMathPolicy = InlineMathPolicy.ANCHORED
) -> Tuple[str, List[MathBlock]]:
    """
    Replace math expressions with placeholder tokens.

    Display math is extracted first, then inline math from what remains.
    Tokens are namespaced and counter-suffixed, and use no characters a
    markdown renderer would reinterpret.

    Args:
        markdown: Raw markdown
        policy: Inline math detection policy

    Returns:
        Tuple of (placeholder-safe markdown, extracted blocks)

    Raises:
        PlaceholderCollisionError: If the text already contains the namespace
    """
    if not markdown:
        return "", []
    if PLACEHOLDER_NAMESPACE in markdown:
        raise PlaceholderCollisionError(
            f"Text already contains the reserved token prefix {PLACEHOLDER_NAMESPACE!r}"
        )

    blocks: List[MathBlock] = []

    def _display(match: re.Match) -> str:
        placeholder = f"{PLACEHOLDER_NAMESPACE}DISPLAY-{len(blocks)}%%"
        blocks.append(MathBlock(placeholder, match.group(1).strip(), display=True))
        return placeholder

    markdown = DISPLAY_MATH_PATTERN.sub(_display, markdown)

    pieces = []
    last = 0
    for start, end, expression in detect_inline_math(markdown, policy):
        placeholder = f"{PLACEHOLDER_NAMESPACE}INLINE-{len(blocks)}%%"
        blocks.append(MathBlock(placeholder, expression, display=False))
        pieces.append(markdown[last:start])
        pieces.append(placeholder)
        last = end
    pieces.append(markdown[last:])

    return "".join(pieces), blocks


# ============================================================================
# Renderers
# ============================================================================

def scope_svg_ids(svg: str, prefix: str) -> str:
    """
    Prefix every id in an SVG fragment, and every ``#id`` reference to it.

    matplotlib gives each figure the same element ids (``figure_1``,
    glyph paths such as ``DejaVuSans-78``), so several SVGs inlined into one
    document would otherwise share ids.
    """
    ids = set(SVG_ID_PATTERN.findall(svg))
    if not ids:
        return svg
    alternation = "|".join(re.escape(i) for i in sorted(ids, key=len, reverse=True))
    pattern = re.compile(rf'(\bid="|#)({alternation})(?=["\)])')
    return pattern.sub(lambda m: f"{m.group(1)}{prefix}{m.group(2)}", svg)


class MathtextBackend:
    """LaTeX to SVG using matplotlib's mathtext engine."""

    # mathtext keeps global parser state
    _lock = threading.Lock()

    def __init__(self, font_size: float = 12.0, display_scale: float = 1.25):
        try:
            from matplotlib.font_manager import FontProperties
            from matplotlib.mathtext import math_to_image
        except ImportError:
            raise ImportError(
                "matplotlib not available. Install with: pip install matplotlib"
            )
        self._math_to_image = math_to_image
        self._inline_font = FontProperties(size=font_size)
        self._display_font = FontProperties(size=font_size * display_scale)
        self._rendered = 0

    def render(self, latex: str, display: bool = False) -> str:
        buffer = io.BytesIO()
        prop = self._display_font if display else self._inline_font
        with self._lock:
            self._math_to_image(f"${latex}$", buffer, prop=prop, format="svg")
            self._rendered += 1
            serial = self._rendered
        svg = buffer.getvalue().decode("utf-8")
        start = svg.find("<svg")
        if start < 0:
            raise ValueError("mathtext produced no <svg> element")
        return scope_svg_ids(svg[start:].strip(), f"math{serial}-")


class MathRenderer:
    """
    Renders math blocks to SVG markup.

    Supports:
    - mathtext (matplotlib, optional dependency)
    - none (always falls back to the original source)
    """

    def __init__(self, engine: str = "mathtext", font_size: float = 12.0):
        self.engine = engine
        self.font_size = font_size
        self._backend = None
        self._initialize_engine()

    def _initialize_engine(self):
        if self.engine == "mathtext":
            try:
                self._backend = MathtextBackend(font_size=self.font_size)
                logger.debug("Initialized mathtext for math rendering")
            except Exception as e:
                logger.warning(f"Math rendering unavailable, using source fallback: {e}")
                self.engine = "none"
        elif self.engine != "none":
            raise ValueError(f"Unknown math engine: {self.engine}")

    @property
    def available(self) -> bool:
        return self._backend is not None

    def to_svg(self, latex: str, display: bool = False) -> str:
        """Render LaTeX to an SVG string; raises if no engine is available."""
        if self._backend is None:
            raise RuntimeError("No math engine available")
        return self._backend.render(latex, display=display)

    def render(self, block: MathBlock) -> str:
        """
        Produce the final markup for a math block.

        Falls back to the escaped dollar-delimited source when rendering fails
        or no engine is available.
        """
        expression = html.unescape(block.expression)
        try:
            svg = self.to_svg(expression, display=block.display)
        except Exception as e:
            logger.debug(f"Math fallback for {block.source!r}: {e}")
            return fallback_markup(block)

        if block.display:
            return f'<div class="math-display">{svg}</div>'
        return f'<span class="math-inline">{svg}</span>'


def fallback_markup(block: MathBlock) -> str:
    """Original math source, HTML-escaped for safe embedding."""
    delimiter = "$$" if block.display else "$"
    expression = html.escape(html.unescape(block.expression), quote=False)
    return f"{delimiter}{expression}{delimiter}"


# ============================================================================
# Restoration
# ============================================================================

def restore_math_blocks(
    html_content: str,
    blocks: List[MathBlock],
    renderer: Optional[MathRenderer] = None
) -> str:
    """
    Replace placeholder tokens in converted HTML with rendered math.

    A rendered display block that the markdown renderer wrapped alone in a
    paragraph replaces the paragraph tags too.

    Raises:
        UnresolvedPlaceholderError: If any placeholder remains afterwards
    """
    for block in blocks:
        if block.placeholder not in html_content:
            logger.debug(f"Placeholder {block.placeholder} not present in rendered HTML")
            continue
        markup = renderer.render(block) if renderer is not None else fallback_markup(block)
        if block.display and markup.startswith("<div"):
            html_content = html_content.replace(f"<p>{block.placeholder}</p>", markup)
        html_content = html_content.replace(block.placeholder, markup)

    leftover = PLACEHOLDER_PATTERN.search(html_content)
    if leftover:
        raise UnresolvedPlaceholderError(f"Unresolved math placeholder: {leftover.group(0)}")
    return html_content
