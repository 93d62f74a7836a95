from .config import Config
from .errors import ConfigError, HtmlGuardError, InputTooLargeError, NestingDepthError, ResourceLimitError
from .filter import HtmlFilter, filter_html
from .node import AttrKind, Attribute, CData, Comment, Element, Fragment, Node, Text
from .sanitize import SanitizationPolicy, resolve_policy
from .serialize import to_html
from .transforms_spec import (
    AllowlistAttrs,
    CheckStyleAttrs,
    ConstrainAttrs,
    ConvertDeprecatedAttrs,
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

__all__ = [
    "AllowlistAttrs",
    "AttrKind",
    "Attribute",
    "CData",
    "CheckStyleAttrs",
    "Comment",
    "Config",
    "ConfigError",
    "ConstrainAttrs",
    "ConvertDeprecatedAttrs",
    "DecideAction",
    "DropAttrValues",
    "DropAttrs",
    "DropUrlAttrs",
    "Edit",
    "Element",
    "Fragment",
    "HandleComments",
    "HtmlFilter",
    "HtmlGuardError",
    "InputTooLargeError",
    "LowercaseAttrValues",
    "MergeAttrs",
    "NestingDepthError",
    "Node",
    "ResourceLimitError",
    "Sanitize",
    "SanitizationPolicy",
    "Text",
    "UniqueIds",
    "filter_html",
    "resolve_policy",
    "to_html",
]
