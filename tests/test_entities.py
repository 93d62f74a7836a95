import unittest

from htmlguard.entities import (
    clean_ms_chars,
    decode_entities,
    deep_unescape,
    escape_attr_value,
    escape_text,
    strip_invalid_chars,
)


class TestEntities(unittest.TestCase):
    def test_decode_entities_decodes_once(self) -> None:
        assert decode_entities("&lt;b&gt; &#65;&#x42; &amp;amp;") == "<b> AB &amp;"
        assert decode_entities("no refs") == "no refs"

    def test_deep_unescape_decodes_nested_references(self) -> None:
        assert deep_unescape("&amp;#106;avascript:") == "javascript:"
        assert deep_unescape("&amp;amp;amp;amp;amp;lt;", rounds=2) == "&amp;amp;amp;lt;"

    def test_escape_text(self) -> None:
        assert escape_text('a & b < c > "d"') == 'a &amp; b &lt; c &gt; "d"'

    def test_escape_attr_value_escapes_quotes(self) -> None:
        assert escape_attr_value('"&"') == "&quot;&amp;&quot;"

    def test_strip_invalid_chars_keeps_whitespace_controls(self) -> None:
        assert strip_invalid_chars("a\x00b\x08c\td\ne\x0bf\x0cg\rh\x1fi\x7f") == "abc\td\nef\x0cg\rhi"


class TestCleanMsChars(unittest.TestCase):
    def test_mode_zero_is_identity(self) -> None:
        assert clean_ms_chars("\x93x\x94", 0) == "\x93x\x94"

    def test_unicode_mode(self) -> None:
        assert clean_ms_chars("\x93x\x94 \x80 \x81", 1) == "“x” € "

    def test_ascii_mode(self) -> None:
        assert clean_ms_chars("\x93x\x94 \x85 \x99", 2) == '"x" ... TM'

    def test_ascii_mode_falls_back_to_unicode(self) -> None:
        assert clean_ms_chars("\x80", 2) == "€"


if __name__ == "__main__":
    unittest.main()
