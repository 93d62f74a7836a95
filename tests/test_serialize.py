import unittest

from htmlguard.node import Attribute, CData, Comment, Element, Fragment, Text
from htmlguard.serialize import serialize_comment_data, serialize_raw_text, serialize_start_tag, to_html


class TestSerializeStartTag(unittest.TestCase):
    def test_values_are_double_quoted_and_escaped(self) -> None:
        el = Element("a", {"title": Attribute("title", 'say "hi" & <bye>')})
        assert serialize_start_tag(el) == '<a title="say &quot;hi&quot; &amp; &lt;bye&gt;">'

    def test_bare_attribute_is_minimized(self) -> None:
        el = Element("input", {"checked": Attribute("checked", None)})
        assert serialize_start_tag(el) == "<input checked>"
        assert serialize_start_tag(el, xhtml=True) == '<input checked="checked" />'

    def test_xhtml_gives_bare_non_boolean_attribute_an_empty_value(self) -> None:
        el = Element("td", {"nowrap": Attribute("nowrap", None), "title": Attribute("title", None)})
        assert serialize_start_tag(el) == "<td nowrap title>"
        assert serialize_start_tag(el, xhtml=True) == '<td nowrap="nowrap" title="">'

    def test_invalid_attribute_names_are_skipped(self) -> None:
        el = Element("b", {'x"y': Attribute('x"y', "1"), "id": Attribute("id", "a")})
        assert serialize_start_tag(el) == '<b id="a">'

    def test_attribute_order_is_retained(self) -> None:
        el = Element("img", {"src": Attribute("src", "a.png"), "alt": Attribute("alt", "")})
        assert serialize_start_tag(el) == '<img src="a.png" alt="">'


class TestToHtml(unittest.TestCase):
    def test_void_elements_have_no_end_tag(self) -> None:
        root = Fragment([Element("p", children=[Text("a"), Element("br"), Text("b")])])
        assert to_html(root) == "<p>a<br>b</p>"
        assert to_html(root, xhtml=True) == "<p>a<br />b</p>"

    def test_text_is_escaped(self) -> None:
        root = Fragment([Text("1 < 2 & 3 > 2")])
        assert to_html(root) == "1 &lt; 2 &amp; 3 &gt; 2"

    def test_raw_text_parent_writes_text_raw(self) -> None:
        root = Fragment([Element("style", children=[Text("a > b { color: red }", raw=True)])])
        assert to_html(root) == "<style>a > b { color: red }</style>"

    def test_raw_text_cannot_close_its_element(self) -> None:
        root = Fragment([Element("style", children=[Text("x</style><script>y", raw=True)])])
        assert to_html(root) == "<style>x<\\/style><\\script>y</style>"

    def test_escapable_raw_text_is_escaped(self) -> None:
        root = Fragment([Element("textarea", children=[Text("</textarea><b>")])])
        assert to_html(root) == "<textarea>&lt;/textarea&gt;&lt;b&gt;</textarea>"

    def test_unclosed_element_has_no_end_tag(self) -> None:
        div = Element("div", children=[Text("x")])
        div.unclosed = True
        assert to_html(Fragment([div])) == "<div>x"

    def test_comment_and_cdata(self) -> None:
        root = Fragment([Comment("a--b<c>"), CData("x<y")])
        assert to_html(root) == "<!--a-b&lt;c&gt; --><![CDATA[x&lt;y]]>"

    def test_single_element_root(self) -> None:
        assert to_html(Element("em", children=[Text("x")])) == "<em>x</em>"

    def test_deep_tree_uses_no_recursion(self) -> None:
        root = Fragment()
        parent = root
        for _ in range(5000):
            child = Element("span")
            parent.append_child(child)
            parent = child
        html = to_html(root)
        assert html.startswith("<span><span>")
        assert html.count("</span>") == 5000

    def test_output_is_deterministic(self) -> None:
        def build():
            return Fragment(
                [Element("a", {"href": Attribute("href", "/x"), "title": Attribute("title", "t")}, [Text("y")])]
            )

        assert to_html(build()) == to_html(build())


class TestSerializeHelpers(unittest.TestCase):
    def test_comment_dash_runs_collapse_and_space_is_added(self) -> None:
        assert serialize_comment_data("a---b") == "a-b "
        assert serialize_comment_data("x ") == "x "
        assert serialize_comment_data("") == " "

    def test_raw_text_neutralizes_script_openers(self) -> None:
        assert serialize_raw_text("< script>", "style") == "<\\ script>"
        assert serialize_raw_text("</SCRIPT>", "script") == "<\\/SCRIPT>"
        assert serialize_raw_text("a < b", "style") == "a < b"


if __name__ == "__main__":
    unittest.main()
