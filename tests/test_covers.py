"""Unit tests for cover-image resolution."""

from bookscout.parsing.covers import (
    background_image,
    from_attribute,
    from_background,
    from_dynamic_image,
    from_meta,
    from_srcset,
    from_value,
    largest_dynamic_image,
    largest_srcset_entry,
    resolve_cover,
)
from bookscout.parsing.document import PageDocument


class TestCandidateParsers:
    def test_srcset_takes_last_entry(self):
        srcset = "https://img.example.com/s.jpg 1x, https://img.example.com/m.jpg 2x, https://img.example.com/l.jpg 3x"
        assert largest_srcset_entry(srcset) == "https://img.example.com/l.jpg"

    def test_srcset_keeps_commas_inside_urls(self):
        srcset = (
            "https://m.media-amazon.com/images/I/41x._AC_SR160,160_.jpg 1x, "
            "https://m.media-amazon.com/images/I/41x._AC_SR320,320_.jpg 2x"
        )
        assert largest_srcset_entry(srcset) == "https://m.media-amazon.com/images/I/41x._AC_SR320,320_.jpg"

    def test_srcset_without_space_after_descriptor(self):
        srcset = "https://img.example.com/s.jpg 160w,https://img.example.com/l.jpg 320w"
        assert largest_srcset_entry(srcset) == "https://img.example.com/l.jpg"

    def test_dynamic_image_picks_largest_area(self):
        raw = '{"https://img.example.com/small.jpg": [218, 218], "https://img.example.com/large.jpg": [500, 750]}'
        assert largest_dynamic_image(raw) == "https://img.example.com/large.jpg"

    def test_dynamic_image_malformed(self):
        assert largest_dynamic_image("{oops") is None

    def test_background_image(self):
        assert background_image("width: 10px; background-image: url('//img.example.com/bg.jpg')") == "'//img.example.com/bg.jpg'"
        assert background_image("color: red") is None


class TestResolveCover:
    def test_high_resolution_attribute_beats_srcset(self):
        html = """
        <img id="landingImage"
             data-old-hires="https://img.example.com/hires.jpg"
             srcset="https://img.example.com/a.jpg 1x, https://img.example.com/b.jpg 2x"
             src="https://img.example.com/src.jpg">
        """
        doc = PageDocument.from_html(html)
        cover = resolve_cover([
            from_attribute(doc, "#landingImage", "data-old-hires"),
            from_srcset(doc, "#landingImage"),
            from_attribute(doc, "#landingImage", "src"),
        ])
        assert cover == "https://img.example.com/hires.jpg"

    def test_empty_candidates_are_skipped(self):
        html = """
        <img id="landingImage" data-old-hires="  " src="//img.example.com/src.jpg">
        <meta property="og:image" content="https://img.example.com/og.jpg">
        """
        doc = PageDocument.from_html(html)
        cover = resolve_cover([
            from_attribute(doc, "#landingImage", "data-old-hires"),
            from_srcset(doc, "#landingImage"),
            from_attribute(doc, "#landingImage", "src"),
            from_meta(doc, 'meta[property="og:image"]'),
        ])
        assert cover == "https://img.example.com/src.jpg"

    def test_dynamic_image_only(self):
        html = """
        <img class="a-dynamic-image"
             data-a-dynamic-image='{"https://img.example.com/small.jpg":[100,150],"https://img.example.com/big.jpg":[600,900]}'>
        """
        doc = PageDocument.from_html(html)
        assert resolve_cover([from_dynamic_image(doc)]) == "https://img.example.com/big.jpg"

    def test_background_style_normalized(self):
        html = """<div id="hero" style="background-image: url(&quot;//img.example.com/bg.jpg&quot;)"></div>"""
        doc = PageDocument.from_html(html)
        assert resolve_cover([from_background(doc, "#hero")]) == "https://img.example.com/bg.jpg"

    def test_relative_value_resolved_against_page(self):
        cover = resolve_cover([from_value("/covers/1.jpg")], "https://www.goodreads.com/book/show/1")
        assert cover == "https://www.goodreads.com/covers/1.jpg"

    def test_nothing_found(self):
        doc = PageDocument.from_html("<html><body></body></html>")
        assert resolve_cover([from_meta(doc, 'meta[property="og:image"]'), from_value(None)]) is None
