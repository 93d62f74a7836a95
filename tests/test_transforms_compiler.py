import unittest

from htmlguard.node import Attribute, AttrKind, CData, Comment, Element, Fragment, Text
from htmlguard.overrides import compile_overrides, parse_overrides
from htmlguard.sanitize import parse_schemes, resolve_policy
from htmlguard.serialize import to_html
from htmlguard.strict import STRICT_TAGS
from htmlguard.transforms import (
    _CompiledDecideElementsChain,
    _CompiledEditTransform,
    _CompiledRewriteAttrsChain,
    _glob_match,
    apply_compiled_transforms,
    attr_kind,
    compile_transforms,
)
from htmlguard.transforms_spec import (
    AllowlistAttrs,
    CheckStyleAttrs,
    ConstrainAttrs,
    DecideAction,
    DropAttrs,
    DropAttrValues,
    DropUrlAttrs,
    Edit,
    HandleComments,
    LowercaseAttrValues,
    MergeAttrs,
    Sanitize,
    UniqueIds,
)

TABLES = (parse_schemes("href: http, https, mailto; *: http, https"),)


def _el(name, attrs=None, children=None, **kwargs):
    return Element(name, {k: Attribute(k, v) for k, v in (attrs or {}).items()}, children, **kwargs)


def _values(node):
    return {k: a.value for k, a in node.attrs.items()}


def _decide_by_name(actions):
    def decide(node):
        return actions.get(node.name, DecideAction.KEEP)

    return _CompiledDecideElementsChain(callbacks=[decide])


class TestTransformsCompiler(unittest.TestCase):
    def test_compile_transforms_fuses_rewrite_attrs_chain(self) -> None:
        compiled = compile_transforms(
            [
                DropAttrs("*", patterns=("id",)),
                DropAttrs("*", patterns=("class",)),
                DropAttrs("*", patterns=("title",)),
            ]
        )
        assert len(compiled) == 1
        assert isinstance(compiled[0], _CompiledRewriteAttrsChain)
        assert len(compiled[0].funcs) == 3

        compiled_mixed = compile_transforms(
            [
                DropAttrs("*", patterns=("id",)),
                DropAttrs("*", patterns=("class",)),
                DropAttrs("a", patterns=("title",)),
            ]
        )
        assert len(compiled_mixed) == 2
        assert isinstance(compiled_mixed[0], _CompiledRewriteAttrsChain)

    def test_edits_are_not_fused(self) -> None:
        compiled = compile_transforms([Edit("p", lambda _n: None), Edit("p", lambda _n: None)])
        assert len(compiled) == 2
        assert all(isinstance(item, _CompiledEditTransform) for item in compiled)
        assert compiled[0].tags == frozenset({"p"})

    def test_sanitize_expands_edits_around_the_element_decision(self) -> None:
        compiled = compile_transforms([Sanitize(resolve_policy({"make_tag_strict": 1}))])
        assert isinstance(compiled[0], _CompiledEditTransform)
        assert compiled[0].tags == STRICT_TAGS
        assert isinstance(compiled[1], _CompiledDecideElementsChain)
        assert isinstance(compiled[2], _CompiledEditTransform)
        assert compiled[2].tags == frozenset({"style"})

        plain = compile_transforms([Sanitize(resolve_policy({"elements": "p"}))])
        assert isinstance(plain[0], _CompiledDecideElementsChain)
        assert not any(isinstance(item, _CompiledEditTransform) for item in plain)

    def test_disabled_transforms_are_skipped(self) -> None:
        disabled = Edit("b", lambda _n: None, enabled=False)
        assert compile_transforms([disabled, DropAttrValues("a", attr="href", pattern="")]) == []
        assert compile_transforms([]) == []

    def test_unsupported_transform_raises(self) -> None:
        with self.assertRaises(TypeError):
            compile_transforms(["div"])  # type: ignore[list-item]

    def test_compiled_edit_wrapper_calls_hook_and_report_first(self) -> None:
        seen: list[str] = []

        def edit(node):
            seen.append(f"edit {node.name}")

        def hook(_node):
            seen.append("hook")

        def report(msg: str, *, node=None):
            _ = node
            seen.append(msg)

        compiled = compile_transforms([Edit("p", edit, callback=hook, report=report)])
        apply_compiled_transforms(Fragment([_el("p"), _el("div")]), compiled)
        assert seen == ["hook", "Edited <p>", "edit p"]

    def test_glob_match(self) -> None:
        assert _glob_match("on*", "onclick")
        assert _glob_match("*", "")
        assert _glob_match("x?y", "xay")
        assert not _glob_match("x?y", "xy")
        assert _glob_match("a*b*c", "aXbYc")
        assert not _glob_match("a*b", "ac")
        assert _glob_match("id", "id")

    def test_attr_kind(self) -> None:
        assert attr_kind("href") is AttrKind.URL
        assert attr_kind("srcset") is AttrKind.URL
        assert attr_kind("style") is AttrKind.STYLE
        assert attr_kind("onload") is AttrKind.EVENT
        assert attr_kind("title") is AttrKind.PLAIN


class TestApplyStructural(unittest.TestCase):
    def test_decide_actions(self) -> None:
        parent = _el("div")
        root = Fragment([parent])

        unwrapme = _el("unwrapme", children=[Text("x")])
        escapeme = _el("escapeme", {"id": "1"}, [Text("y")], raw_start='<escapeme id="1">')
        dropme = _el("dropme", children=[Text("gone")])
        for node in (unwrapme, escapeme, dropme, Text("t")):
            parent.append_child(node)

        chain = _decide_by_name(
            {
                "unwrapme": DecideAction.UNWRAP,
                "escapeme": DecideAction.ESCAPE,
                "dropme": DecideAction.DROP,
            }
        )
        apply_compiled_transforms(root, [chain])

        assert to_html(root) == '<div>x&lt;escapeme id="1"&gt;y&lt;/escapeme&gt;t</div>'
        assert unwrapme.children == []

    def test_chain_stops_at_first_non_keep(self) -> None:
        calls: list[str] = []

        def first(node):
            calls.append("first")
            return DecideAction.DROP

        def second(node):
            calls.append("second")
            return DecideAction.KEEP

        root = Fragment([_el("span")])
        apply_compiled_transforms(root, [_CompiledDecideElementsChain(callbacks=[first, second])])
        assert root.children == []
        assert calls == ["first"]

    def test_hoisted_children_get_every_transform(self) -> None:
        inner = _el("b", {"onclick": "x()"}, [_el("bad", children=[Text("deep")])])
        root = Fragment([_el("bad", children=[inner])])
        compiled = [_decide_by_name({"bad": DecideAction.UNWRAP}), *compile_transforms([DropAttrs(patterns=("on*",))])]
        apply_compiled_transforms(root, compiled)
        assert to_html(root) == "<b>deep</b>"

    def test_escape_reconstructs_missing_start_tag(self) -> None:
        root = Fragment([_el("x", {"title": "a<b"}, [Text("y")])])
        apply_compiled_transforms(root, [_decide_by_name({"x": DecideAction.ESCAPE})])
        assert [type(n) for n in root.children] == [Text, Text, Text]
        assert root.children[0].data == '<x title="a&lt;b">'
        assert root.children[2].data == "</x>"

    def test_escape_unclosed_and_void_have_no_end_tag(self) -> None:
        unclosed = _el("x", children=[Text("y")])
        unclosed.unclosed = True
        root = Fragment([unclosed, _el("img")])
        apply_compiled_transforms(root, [_decide_by_name({"x": DecideAction.ESCAPE, "img": DecideAction.ESCAPE})])
        assert [n.data for n in root.children] == ["<x>", "y", "<img>"]

    def test_drop_and_edit(self) -> None:
        root = Fragment([_el("p", children=[_el("i"), Text("a")]), _el("i")])
        compiled = [
            *compile_transforms([Edit("p", lambda node: node.set_attr("class", "para"))]),
            _decide_by_name({"i": DecideAction.DROP}),
        ]
        apply_compiled_transforms(root, compiled)
        assert to_html(root) == '<p class="para">a</p>'

    def test_chain_with_no_callbacks_keeps(self) -> None:
        root = Fragment([_el("div")])
        apply_compiled_transforms(root, [_CompiledDecideElementsChain(callbacks=[])])
        assert to_html(root) == "<div></div>"

    def test_non_parent_root_is_ignored(self) -> None:
        text = Text("x")
        apply_compiled_transforms(text, [_decide_by_name({})])
        assert text.data == "x"


class TestApplyAttributes(unittest.TestCase):
    def test_drop_allowlist_and_drop_url(self) -> None:
        node = _el(
            "a",
            {
                "onclick": "x",
                "srcdoc": "y",
                "data:bad": "1",
                "href": "javascript:alert(1)",
                "id": "ok",
                "data-x": "2",
            },
        )
        root = Fragment([node])
        compiled = compile_transforms(
            [
                DropAttrs(patterns=("on*", "srcdoc", "*:*")),
                AllowlistAttrs(allowed_attributes={"*": {"id"}, "a": {"href"}}, prefixes=("data-",)),
                DropUrlAttrs(scheme_tables=TABLES),
            ]
        )
        apply_compiled_transforms(root, compiled)
        assert _values(node) == {"id": "ok", "data-x": "2"}

    def test_drop_attrs_keep_and_report(self) -> None:
        seen = []
        node = _el("p", {"title": "t", "class": "c", "id": "i"})
        compiled = compile_transforms(
            [DropAttrs(patterns=("*",), keep=("title",), report=lambda msg, *, node=None: seen.append(msg))]
        )
        apply_compiled_transforms(Fragment([node]), compiled)
        assert _values(node) == {"title": "t"}
        assert seen == [
            "Unsafe attribute 'class' (matched forbidden pattern '*')",
            "Unsafe attribute 'id' (matched forbidden pattern '*')",
        ]

    def test_allowlist_classifies_and_drops_invalid_names(self) -> None:
        node = _el("img", {"src": "a.png", "=x": None, "style": "color: red", "onload": "f()", "alt": ""})
        compiled = compile_transforms(
            [AllowlistAttrs(allowed_attributes={"*": {"style"}, "img": {"src", "alt"}}, allow_events=True)]
        )
        apply_compiled_transforms(Fragment([node]), compiled)
        assert list(node.attrs) == ["src", "style", "onload", "alt"]
        assert node.attrs["src"].kind is AttrKind.URL
        assert node.attrs["style"].kind is AttrKind.STYLE
        assert node.attrs["onload"].kind is AttrKind.EVENT
        assert node.attrs["alt"].kind is AttrKind.PLAIN

    def test_allowlist_overrides_add_and_remove(self) -> None:
        overrides = compile_overrides(parse_overrides("b=-title, rel; i=rel"))
        b = _el("b", {"title": "t", "rel": "x"})
        i = _el("i", {"title": "t", "rel": "x"})
        u = _el("u", {"title": "t", "rel": "x"})
        compiled = compile_transforms(
            [AllowlistAttrs(allowed_attributes={"*": {"title"}}, overrides=overrides)]
        )
        apply_compiled_transforms(Fragment([b, i, u]), compiled)
        assert _values(b) == {"rel": "x"}
        assert _values(i) == {"title": "t", "rel": "x"}
        assert _values(u) == {"title": "t"}

    def test_constrain_attrs(self) -> None:
        overrides = compile_overrides(
            parse_overrides("embed=type(oneof=application/x-shockwave-flash); td=colspan(maxval=5/default=1)")
        )
        embed = _el("embed", {"type": "text/html", "src": "x.swf"})
        ok = _el("embed", {"type": "application/x-shockwave-flash"})
        td = _el("td", {"colspan": "99"})
        apply_compiled_transforms(Fragment([embed, ok, td]), compile_transforms([ConstrainAttrs(overrides)]))
        assert _values(embed) == {"src": "x.swf"}
        assert _values(ok) == {"type": "application/x-shockwave-flash"}
        assert _values(td) == {"colspan": "1"}

    def test_lowercase_attr_values(self) -> None:
        p = _el("p", {"align": "LEFT", "title": "KEEP"})
        inp = _el("input", {"type": "TEXT"})
        a = _el("a", {"type": "TEXT/HTML"})
        compiled = compile_transforms(
            [LowercaseAttrValues(("align",), names_by_tag={"input": ("type",)})]
        )
        apply_compiled_transforms(Fragment([p, inp, a]), compiled)
        assert _values(p) == {"align": "left", "title": "KEEP"}
        assert _values(inp) == {"type": "text"}
        assert _values(a) == {"type": "TEXT/HTML"}

    def test_drop_url_attrs_checks_kind_and_srcset(self) -> None:
        img = _el("img", {"src": "javascript:x", "srcset": "a.png 1x, data:x 2x", "title": "javascript:x"})
        a = _el("a", {"href": "mailto:me@example.com"})
        for node in (img, a):
            for name, attr in node.attrs.items():
                attr.kind = attr_kind(name)
        apply_compiled_transforms(Fragment([img, a]), compile_transforms([DropUrlAttrs(scheme_tables=TABLES)]))
        assert _values(img) == {"title": "javascript:x"}
        assert _values(a) == {"href": "mailto:me@example.com"}

    def test_drop_url_attrs_rewrites(self) -> None:
        def _link(href):
            node = _el("a", {"href": href})
            node.attrs["href"].kind = AttrKind.URL
            return node

        nodes = [_link("page.html"), _link("#top"), _link("mailto:me@example.com")]
        compiled = compile_transforms(
            [
                DropUrlAttrs(
                    scheme_tables=TABLES,
                    abs_url=1,
                    base_url="http://example.com/dir/",
                    anti_mail_spam=" AT ",
                )
            ]
        )
        apply_compiled_transforms(Fragment(nodes), compiled)
        assert [n.get_attr("href") for n in nodes] == [
            "http://example.com/dir/page.html",
            "#top",
            "mailto:me AT example.com",
        ]

    def test_drop_url_attrs_makes_same_origin_relative(self) -> None:
        nodes = [_el("a", {"href": "http://example.com/a?b#c"}), _el("a", {"href": "http://other.com/a"})]
        for node in nodes:
            node.attrs["href"].kind = AttrKind.URL
        compiled = compile_transforms(
            [DropUrlAttrs(scheme_tables=TABLES, abs_url=-1, base_url="http://example.com/")]
        )
        apply_compiled_transforms(Fragment(nodes), compiled)
        assert [n.get_attr("href") for n in nodes] == ["/a?b#c", "http://other.com/a"]

    def test_check_style_attrs(self) -> None:
        bad = _el("p", {"style": "width: expression(alert(1))", "id": "x"})
        good = _el("p", {"style": "color: red"})
        apply_compiled_transforms(Fragment([bad, good]), compile_transforms([CheckStyleAttrs(scheme_tables=TABLES)]))
        assert _values(bad) == {"id": "x"}
        assert _values(good) == {"style": "color: red"}


class TestApplyDocumentTransforms(unittest.TestCase):
    def test_unique_ids(self) -> None:
        nodes = [_el("p", {"id": "a"}), _el("p", {"id": "a"}), _el("p", {"id": "1bad"}), _el("p", {"id": "b"})]
        apply_compiled_transforms(Fragment(nodes), compile_transforms([UniqueIds()]))
        assert [n.get_attr("id") for n in nodes] == ["a", None, None, "b"]

    def test_unique_ids_prefix_applied_once(self) -> None:
        nodes = [_el("p", {"id": "x"}), _el("p", {"id": "p_x"}), _el("p", {"id": "p_y"})]
        apply_compiled_transforms(Fragment(nodes), compile_transforms([UniqueIds("p_")]))
        assert [n.get_attr("id") for n in nodes] == ["p_x", None, "p_y"]

    def test_unique_ids_are_tracked_per_application(self) -> None:
        compiled = compile_transforms([UniqueIds()])
        for _ in range(2):
            node = _el("p", {"id": "a"})
            apply_compiled_transforms(Fragment([node]), compiled)
            assert node.get_attr("id") == "a"

    def test_merge_attrs(self) -> None:
        ext = _el("a", {"href": "http://x.com", "rel": "Author author"})
        local = _el("a", {"href": "/local"})
        compiled = compile_transforms(
            [MergeAttrs("a", attr="rel", tokens=("nofollow",), if_attr="href", if_match="^https?:")]
        )
        apply_compiled_transforms(Fragment([ext, local]), compiled)
        assert ext.get_attr("rel") == "author nofollow"
        assert "rel" not in local.attrs

    def test_drop_attr_values(self) -> None:
        spam = _el("a", {"href": "http://spam.example/x", "title": "t"})
        fine = _el("a", {"href": "http://good.example/"})
        compiled = compile_transforms([DropAttrValues("a, area", attr="href", pattern="spam")])
        apply_compiled_transforms(Fragment([spam, fine]), compiled)
        assert _values(spam) == {"title": "t"}
        assert _values(fine) == {"href": "http://good.example/"}

    def test_handle_comments_modes(self) -> None:
        def run(comment, cdata):
            root = Fragment([_el("div", children=[Comment("a&amp;<b>"), CData("x")])])
            apply_compiled_transforms(root, compile_transforms([HandleComments(comment=comment, cdata=cdata)]))
            return to_html(root)

        assert run(0, 0) == "<div>&lt;!--a&amp;amp;&lt;b&gt;--&gt;&lt;![CDATA[x]]&gt;</div>"
        assert run(1, 1) == "<div></div>"
        assert run(2, 3) == "<div><!--a&amp;&lt;b&gt; --><![CDATA[x]]></div>"
        assert compile_transforms([HandleComments(comment=3, cdata=3)]) == []


if __name__ == "__main__":
    unittest.main()
