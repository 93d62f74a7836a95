"""Element and attribute tables shared by the tokenizer, tree builder and sanitizer.

All names are ASCII-lowercase.
"""

from __future__ import annotations

# Elements `*` stands for in an element spec. `script` is not among them: it
# is only ever allowed by naming it.
KNOWN_ELEMENTS: frozenset[str] = frozenset(
    {
        "a",
        "abbr",
        "acronym",
        "address",
        "applet",
        "area",
        "article",
        "aside",
        "audio",
        "b",
        "bdi",
        "bdo",
        "big",
        "blockquote",
        "br",
        "button",
        "canvas",
        "caption",
        "center",
        "cite",
        "code",
        "col",
        "colgroup",
        "command",
        "data",
        "datalist",
        "dd",
        "del",
        "details",
        "dfn",
        "dir",
        "div",
        "dl",
        "dt",
        "em",
        "embed",
        "fieldset",
        "figcaption",
        "figure",
        "font",
        "footer",
        "form",
        "h1",
        "h2",
        "h3",
        "h4",
        "h5",
        "h6",
        "header",
        "hgroup",
        "hr",
        "i",
        "iframe",
        "img",
        "input",
        "ins",
        "isindex",
        "kbd",
        "keygen",
        "label",
        "legend",
        "li",
        "link",
        "main",
        "map",
        "mark",
        "menu",
        "meta",
        "meter",
        "nav",
        "noscript",
        "object",
        "ol",
        "optgroup",
        "option",
        "output",
        "p",
        "param",
        "pre",
        "progress",
        "q",
        "rb",
        "rp",
        "rt",
        "rtc",
        "ruby",
        "s",
        "samp",
        "section",
        "select",
        "small",
        "source",
        "span",
        "strike",
        "strong",
        "style",
        "sub",
        "summary",
        "sup",
        "table",
        "tbody",
        "td",
        "textarea",
        "tfoot",
        "th",
        "thead",
        "time",
        "tr",
        "track",
        "tt",
        "u",
        "ul",
        "var",
        "video",
        "wbr",
    }
)

VOID_ELEMENTS: frozenset[str] = frozenset(
    {
        "area",
        "base",
        "basefont",
        "br",
        "col",
        "command",
        "embed",
        "hr",
        "img",
        "input",
        "isindex",
        "keygen",
        "link",
        "meta",
        "param",
        "source",
        "track",
        "wbr",
    }
)

# Content is tokenized as a single text run up to the matching end tag.
RAWTEXT_ELEMENTS: frozenset[str] = frozenset({"iframe", "noembed", "noframes", "script", "style", "xmp"})
RCDATA_ELEMENTS: frozenset[str] = frozenset({"textarea", "title"})

# Disallowed containers whose text payload is never preserved.
DROP_CONTENT_ELEMENTS: frozenset[str] = frozenset({"script", "style"})

SAFE_DENIED_ELEMENTS: frozenset[str] = frozenset(
    {
        "applet",
        "audio",
        "base",
        "basefont",
        "button",
        "canvas",
        "embed",
        "form",
        "frame",
        "frameset",
        "iframe",
        "input",
        "isindex",
        "keygen",
        "link",
        "meta",
        "object",
        "optgroup",
        "option",
        "param",
        "script",
        "select",
        "style",
        "textarea",
        "video",
    }
)

LIST_ELEMENTS: frozenset[str] = frozenset({"dir", "menu", "ol", "ul"})
NESTABLE_LISTS: frozenset[str] = frozenset({"ol", "ul"})

# Start tags that close an open <p> (HTML "button scope").
BLOCK_ELEMENTS: frozenset[str] = frozenset(
    {
        "address",
        "article",
        "aside",
        "blockquote",
        "center",
        "dd",
        "details",
        "dir",
        "div",
        "dl",
        "dt",
        "fieldset",
        "figcaption",
        "figure",
        "footer",
        "form",
        "h1",
        "h2",
        "h3",
        "h4",
        "h5",
        "h6",
        "header",
        "hgroup",
        "hr",
        "li",
        "main",
        "menu",
        "nav",
        "ol",
        "p",
        "pre",
        "section",
        "summary",
        "table",
        "ul",
    }
)

P_SCOPE_BOUNDARIES: frozenset[str] = frozenset(
    {"applet", "button", "caption", "marquee", "object", "table", "td", "th"}
)

_TABLE_SECTIONS = frozenset({"tbody", "tfoot", "thead"})

# element -> (names closed when it opens, names that stop the search)
NON_NESTABLE: dict[str, tuple[frozenset[str], frozenset[str]]] = {
    "a": (frozenset({"a"}), frozenset()),
    "button": (frozenset({"button"}), frozenset()),
    "dd": (frozenset({"dd", "dt"}), frozenset({"dl"})),
    "dt": (frozenset({"dd", "dt"}), frozenset({"dl"})),
    "form": (frozenset({"form"}), frozenset()),
    "label": (frozenset({"label"}), frozenset()),
    "li": (frozenset({"li"}), LIST_ELEMENTS),
    "optgroup": (frozenset({"optgroup", "option"}), frozenset({"select"})),
    "option": (frozenset({"option"}), frozenset({"datalist", "optgroup", "select"})),
    "p": (frozenset({"p"}), P_SCOPE_BOUNDARIES),
    "tbody": (_TABLE_SECTIONS, frozenset({"table"})),
    "td": (frozenset({"td", "th"}), frozenset({"table", "tr"})),
    "tfoot": (_TABLE_SECTIONS, frozenset({"table"})),
    "th": (frozenset({"td", "th"}), frozenset({"table", "tr"})),
    "thead": (_TABLE_SECTIONS, frozenset({"table"})),
    "tr": (frozenset({"tr"}), frozenset({"table"}) | _TABLE_SECTIONS),
}

GLOBAL_ATTRIBUTES: frozenset[str] = frozenset(
    {
        "accesskey",
        "class",
        "contenteditable",
        "contextmenu",
        "dir",
        "draggable",
        "dropzone",
        "hidden",
        "id",
        "lang",
        "role",
        "spellcheck",
        "style",
        "tabindex",
        "title",
        "translate",
        "xml:lang",
        "xml:space",
    }
)

GLOBAL_ATTRIBUTE_PREFIXES: tuple[str, ...] = ("aria-", "data-")

_CELLS = frozenset({"td", "th"})
_MEDIA = frozenset({"audio", "video"})

ATTRIBUTE_ELEMENTS: dict[str, frozenset[str]] = {
    "abbr": _CELLS,
    "accept": frozenset({"form", "input"}),
    "accept-charset": frozenset({"form"}),
    "action": frozenset({"form"}),
    "align": frozenset(
        {
            "applet",
            "caption",
            "col",
            "colgroup",
            "div",
            "h1",
            "h2",
            "h3",
            "h4",
            "h5",
            "h6",
            "hr",
            "iframe",
            "img",
            "input",
            "legend",
            "object",
            "p",
            "table",
            "tbody",
            "td",
            "tfoot",
            "th",
            "thead",
            "tr",
        }
    ),
    "allowfullscreen": frozenset({"iframe"}),
    "alt": frozenset({"applet", "area", "img", "input"}),
    "archive": frozenset({"applet", "object"}),
    "autoplay": _MEDIA,
    "axis": _CELLS,
    "bgcolor": frozenset({"table", "td", "th", "tr"}),
    "border": frozenset({"img", "object", "table"}),
    "cellpadding": frozenset({"table"}),
    "cellspacing": frozenset({"table"}),
    "char": frozenset({"col", "colgroup", "tbody", "td", "tfoot", "th", "thead", "tr"}),
    "charoff": frozenset({"col", "colgroup", "tbody", "td", "tfoot", "th", "thead", "tr"}),
    "charset": frozenset({"a"}),
    "checked": frozenset({"input"}),
    "cite": frozenset({"blockquote", "del", "ins", "q"}),
    "classid": frozenset({"object"}),
    "clear": frozenset({"br"}),
    "code": frozenset({"applet"}),
    "codebase": frozenset({"applet", "object"}),
    "codetype": frozenset({"object"}),
    "color": frozenset({"font"}),
    "cols": frozenset({"textarea"}),
    "colspan": _CELLS,
    "compact": frozenset({"dir", "dl", "menu", "ol", "ul"}),
    "controls": _MEDIA,
    "coords": frozenset({"a", "area"}),
    "data": frozenset({"object"}),
    "datetime": frozenset({"del", "ins", "time"}),
    "declare": frozenset({"object"}),
    "defer": frozenset({"script"}),
    "disabled": frozenset({"button", "command", "fieldset", "input", "keygen", "optgroup", "option", "select", "textarea"}),
    "enctype": frozenset({"form"}),
    "face": frozenset({"font"}),
    "flashvars": frozenset({"embed"}),
    "for": frozenset({"label", "output"}),
    "frame": frozenset({"table"}),
    "frameborder": frozenset({"iframe"}),
    "headers": _CELLS,
    "height": frozenset({"applet", "canvas", "embed", "iframe", "img", "input", "object", "td", "th", "video"}),
    "high": frozenset({"meter"}),
    "href": frozenset({"a", "area", "link"}),
    "hreflang": frozenset({"a", "area", "link"}),
    "hspace": frozenset({"applet", "img", "object"}),
    "ismap": frozenset({"img", "input"}),
    "label": frozenset({"command", "option", "optgroup", "track"}),
    "longdesc": frozenset({"iframe", "img"}),
    "loop": _MEDIA,
    "low": frozenset({"meter"}),
    "marginheight": frozenset({"iframe"}),
    "marginwidth": frozenset({"iframe"}),
    "max": frozenset({"input", "meter", "progress"}),
    "maxlength": frozenset({"input", "textarea"}),
    "media": frozenset({"a", "area", "link", "source", "style"}),
    "method": frozenset({"form"}),
    "min": frozenset({"input", "meter"}),
    "multiple": frozenset({"input", "select"}),
    "muted": _MEDIA,
    "name": frozenset(
        {
            "a",
            "applet",
            "button",
            "embed",
            "fieldset",
            "form",
            "iframe",
            "img",
            "input",
            "keygen",
            "map",
            "meta",
            "object",
            "output",
            "param",
            "select",
            "textarea",
        }
    ),
    "nohref": frozenset({"area"}),
    "noshade": frozenset({"hr"}),
    "nowrap": _CELLS,
    "object": frozenset({"applet"}),
    "open": frozenset({"details"}),
    "optimum": frozenset({"meter"}),
    "pattern": frozenset({"input"}),
    "placeholder": frozenset({"input", "textarea"}),
    "pluginspage": frozenset({"embed"}),
    "pluginurl": frozenset({"embed"}),
    "poster": frozenset({"video"}),
    "preload": _MEDIA,
    "quality": frozenset({"embed"}),
    "readonly": frozenset({"input", "textarea"}),
    "rel": frozenset({"a", "area", "link"}),
    "rev": frozenset({"a", "link"}),
    "reversed": frozenset({"ol"}),
    "rows": frozenset({"textarea"}),
    "rowspan": _CELLS,
    "rules": frozenset({"table"}),
    "scope": _CELLS,
    "scrolling": frozenset({"iframe"}),
    "selected": frozenset({"option"}),
    "shape": frozenset({"a", "area"}),
    "size": frozenset({"font", "hr", "input", "select"}),
    "sizes": frozenset({"img", "link", "source"}),
    "span": frozenset({"col", "colgroup"}),
    "src": frozenset({"audio", "embed", "iframe", "img", "input", "script", "source", "track", "video"}),
    "srclang": frozenset({"track"}),
    "srcset": frozenset({"img", "source"}),
    "standby": frozenset({"object"}),
    "start": frozenset({"ol"}),
    "step": frozenset({"input"}),
    "summary": frozenset({"table"}),
    "target": frozenset({"a", "area", "form"}),
    "type": frozenset(
        {
            "a",
            "button",
            "command",
            "embed",
            "input",
            "li",
            "link",
            "menu",
            "object",
            "ol",
            "param",
            "script",
            "source",
            "style",
            "ul",
        }
    ),
    "usemap": frozenset({"img", "input", "object"}),
    "valign": frozenset({"col", "colgroup", "tbody", "td", "tfoot", "th", "thead", "tr"}),
    "value": frozenset({"button", "data", "input", "li", "meter", "option", "param", "progress"}),
    "valuetype": frozenset({"param"}),
    "vspace": frozenset({"applet", "img", "object"}),
    "width": frozenset(
        {"applet", "canvas", "col", "colgroup", "embed", "hr", "iframe", "img", "input", "object", "pre", "table", "td", "th", "video"}
    ),
    "wmode": frozenset({"embed"}),
    "wrap": frozenset({"textarea"}),
}

URL_ATTRIBUTES: frozenset[str] = frozenset(
    {
        "action",
        "archive",
        "background",
        "cite",
        "classid",
        "codebase",
        "data",
        "dynsrc",
        "formaction",
        "href",
        "icon",
        "longdesc",
        "lowsrc",
        "manifest",
        "model",
        "pluginspage",
        "pluginurl",
        "poster",
        "profile",
        "src",
        "srcset",
        "usemap",
        "xlink:href",
    }
)

# Names joined by '-' that option and override parsers read as one attribute.
HYPHENATED_ATTRIBUTES: frozenset[str] = frozenset({"accept-charset", "http-equiv"})

BOOLEAN_ATTRIBUTES: frozenset[str] = frozenset(
    {
        "allowfullscreen",
        "autoplay",
        "checked",
        "compact",
        "controls",
        "declare",
        "defer",
        "disabled",
        "hidden",
        "ismap",
        "loop",
        "multiple",
        "muted",
        "nohref",
        "noresize",
        "noshade",
        "nowrap",
        "open",
        "readonly",
        "reversed",
        "selected",
    }
)

# Attributes whose values are case-insensitive keywords.
STANDARD_VALUE_ATTRIBUTES: frozenset[str] = frozenset(
    {
        "align",
        "checked",
        "clear",
        "compact",
        "declare",
        "defer",
        "dir",
        "disabled",
        "enctype",
        "frame",
        "frameborder",
        "ismap",
        "method",
        "multiple",
        "nohref",
        "noshade",
        "nowrap",
        "readonly",
        "rules",
        "scope",
        "scrolling",
        "selected",
        "shape",
        "valign",
        "valuetype",
    }
)

DEFAULT_SCHEMES = (
    "href: aim, feed, file, ftp, gopher, http, https, irc, mailto, news, nntp, sftp, ssh, tel, telnet; "
    "*: file, http, https"
)

SAFE_SCHEMES = (
    "href: aim, feed, file, ftp, gopher, http, https, irc, mailto, news, nntp, sftp, ssh, tel, telnet; "
    "style: !; *: file, http, https"
)

FONT_SIZES: dict[str, str] = {
    "0": "xx-small",
    "1": "xx-small",
    "2": "small",
    "3": "medium",
    "4": "large",
    "5": "x-large",
    "6": "xx-large",
    "7": "300%",
    "-1": "smaller",
    "-2": "60%",
    "+1": "larger",
    "+2": "150%",
    "+3": "200%",
    "+4": "300%",
}
