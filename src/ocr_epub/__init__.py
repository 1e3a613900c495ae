"""
OCR EPUB
========

Turns a structured OCR result into a downloadable bundle of Markdown,
standalone HTML and an EPUB 3 e-book.

Main components:
- Resource extraction and page combination
- Image reference rewriting
- Math protection and SVG rendering
- HTML rendering
- EPUB (OCF) packaging
- Output archive assembly
"""

__version__ = "1.0.0"
__author__ = "OCR EPUB Team"
