"""
Tests for markdown image reference rewriting.
"""

import pytest
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from ocr_epub.utils.paths import process_markdown_images


class TestReferenceRewriter:
    """Tests for process_markdown_images."""

    def test_prefixes_local_images(self):
        assert process_markdown_images("![img-0.jpeg](img-0.jpeg)") == "![img-0.jpeg](images/img-0.jpeg)"

    def test_custom_prefix(self):
        assert process_markdown_images("![a](b.png)", "assets/") == "![a](assets/b.png)"

    def test_external_and_data_sources_untouched(self):
        markdown = (
            "![a](http://example.com/a.png) "
            "![b](https://example.com/b.png) "
            "![c](data:image/png;base64,AAAA)"
        )
        assert process_markdown_images(markdown) == markdown

    def test_plain_links_untouched(self):
        markdown = "[tbl-0.md](tbl-0.md) and [site](page.html)"
        assert process_markdown_images(markdown) == markdown

    @pytest.mark.parametrize("markdown", [
        "![x](img-1.png)",
        "text ![](a.jpg) more ![alt text](images/b.png)",
        "![remote](http://x/y.png)\n\n![local](z.gif)",
        "",
    ])
    def test_idempotent(self, markdown):
        once = process_markdown_images(markdown)
        assert process_markdown_images(once) == once

    def test_empty_input(self):
        assert process_markdown_images("") == ""
        assert process_markdown_images(None) == ""
