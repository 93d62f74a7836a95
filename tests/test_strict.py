import unittest

from htmlguard import filter_html
from htmlguard.node import Attribute, AttrKind, Element
from htmlguard.strict import convert_deprecated_attrs, make_tag_strict


def _el(name, **attrs):
    return Element(name, {k: Attribute(k, v) for k, v in attrs.items()})


class TestMakeTagStrict(unittest.TestCase):
    def test_center(self) -> None:
        el = _el("center")
        assert make_tag_strict(el) == "center"
        assert el.name == "div"
        assert el.get_attr("style") == "text-align: center;"
        assert el.attrs["style"].kind is AttrKind.STYLE

    def test_font(self) -> None:
        el = _el("font", color="red", face="Arial", size="3", title="t")
        make_tag_strict(el)
        assert el.name == "span"
        assert list(el.attrs) == ["title", "style"]
        assert el.get_attr("style") == "color: red; font-family: Arial; font-size: medium;"

    def test_font_with_unknown_size(self) -> None:
        el = _el("font", size="9")
        make_tag_strict(el)
        assert el.name == "span"
        assert "style" not in el.attrs

    def test_existing_style_is_kept_after_new_declarations(self) -> None:
        el = _el("u", style="color: red")
        make_tag_strict(el)
        assert el.get_attr("style") == "text-decoration: underline; color: red"

    def test_strike_and_lists(self) -> None:
        for name in ("s", "strike"):
            el = _el(name)
            make_tag_strict(el)
            assert el.name == "span"
            assert el.get_attr("style") == "text-decoration: line-through;"
        for name in ("dir", "menu"):
            el = _el(name)
            make_tag_strict(el)
            assert el.name == "ul"
            assert el.attrs == {}

    def test_other_elements_untouched(self) -> None:
        el = _el("b")
        assert make_tag_strict(el) is None
        assert el.name == "b"


class TestConvertDeprecatedAttrs(unittest.TestCase):
    def test_paragraph_align(self) -> None:
        el = _el("p", align="CENTER")
        assert convert_deprecated_attrs(el, 1) == ["align"]
        assert list(el.attrs) == ["style"]
        assert el.get_attr("style") == "text-align: center;"

    def test_image_attributes(self) -> None:
        el = _el("img", src="a.png", align="left", border="2", hspace="5")
        convert_deprecated_attrs(el, 1)
        assert el.get_attr("src") == "a.png"
        assert el.get_attr("style") == (
            "float: left; border-style: solid; border-width: 2px; margin-left: 5px; margin-right: 5px;"
        )

    def test_table_border_and_image_width_stay(self) -> None:
        table = _el("table", border="1", bgcolor="#fff")
        assert convert_deprecated_attrs(table, 1) == ["bgcolor"]
        assert table.get_attr("border") == "1"
        img = _el("img", width="10")
        assert convert_deprecated_attrs(img, 1) == []

    def test_cell_dimensions(self) -> None:
        el = _el("td", width="50", height="20%", nowrap=None)
        convert_deprecated_attrs(el, 1)
        assert el.get_attr("style") == "width: 50px; height: 20%; white-space: nowrap;"

    def test_invalid_value_is_dropped_without_style(self) -> None:
        el = _el("br", clear="sideways")
        assert convert_deprecated_attrs(el, 1) == ["clear"]
        assert el.attrs == {}

    def test_attribute_not_defined_for_element_is_left(self) -> None:
        el = _el("span", align="left")
        assert convert_deprecated_attrs(el, 1) == []
        assert el.get_attr("align") == "left"

    def test_level_two_converts_lang(self) -> None:
        el = _el("p", lang="en")
        assert convert_deprecated_attrs(el, 1) == []
        assert convert_deprecated_attrs(el, 2) == ["lang"]
        assert el.attrs["xml:lang"].value == "en"
        assert "lang" not in el.attrs


class TestStrictFiltering(unittest.TestCase):
    def test_make_tag_strict_option(self) -> None:
        html = filter_html("<center>x</center>", {"make_tag_strict": 1})
        assert html == '<div style="text-align: center;">x</div>'

    def test_valid_xhtml_implies_strict_tags(self) -> None:
        html = filter_html("<u>x</u><br>", {"valid_xhtml": 1})
        assert html == '<span style="text-decoration: underline;">x</span><br />'

    def test_no_deprecated_attr_option(self) -> None:
        html = filter_html('<p align="right">x</p>', {"no_deprecated_attr": 1})
        assert html == '<p style="text-align: right;">x</p>'

    def test_generated_style_goes_through_css_check(self) -> None:
        html = filter_html('<font color="expression(alert(1))">x</font>', {"make_tag_strict": 1})
        assert html == "<span>x</span>"

    def test_strict_tags_off_by_default(self) -> None:
        assert filter_html("<u>x</u>") == "<u>x</u>"


if __name__ == "__main__":
    unittest.main()
