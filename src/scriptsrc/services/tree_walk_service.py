# src/scriptsrc/services/tree_walk_service.py
from __future__ import annotations

import logging
from typing import IO, Any, Dict, List, Union

from bs4 import BeautifulSoup
from bs4.element import NavigableString, PageElement, PreformattedString, Tag

from scriptsrc.errors import DuplicateAttributeError, InvalidInlineScriptError
from scriptsrc.model import ScriptSrc

logger = logging.getLogger(__name__)

Markup = Union[str, bytes, IO[str], IO[bytes]]

# An HTML5 parser reads the content of these as plain text, html.parser builds
# tags from it. Markup inside them never runs, so the walk does not descend.
RAW_TEXT_ELEMENTS = frozenset({
    "iframe", "noembed", "noframes", "noscript", "plaintext", "style", "textarea", "title", "xmp",
})


class RepeatedAttribute(list):
    """All values of an attribute that was written more than once on the same tag."""


def _keep_repeated(attrs: Dict[str, Any], key: str, value: str) -> None:
    # bs4 calls this instead of silently overwriting the first value
    existing = attrs[key]
    if isinstance(existing, RepeatedAttribute):
        existing.append(value)
    else:
        attrs[key] = RepeatedAttribute([existing, value])


def _attr_values(value: Any) -> List[str]:
    return list(value) if isinstance(value, RepeatedAttribute) else [value]


def parse_document(markup: Markup) -> BeautifulSoup:
    """
    Parses HTML into a BeautifulSoup tree suitable for walking.
    Attribute values are kept as raw strings (no class splitting) and repeated
    attributes are kept rather than collapsed.

    Bytes are decoded as UTF-8 and newlines are normalized to LF before parsing,
    the same as a browser does, so CRLF files hash like their LF twins.
    """
    if hasattr(markup, "read"):
        markup = markup.read()
    if isinstance(markup, bytes):
        markup = markup.decode("utf-8")
    markup = markup.replace("\r\n", "\n").replace("\r", "\n")
    return BeautifulSoup(
        markup,
        "html.parser",
        multi_valued_attributes=None,
        on_duplicate_attribute=_keep_repeated,
    )


def _is_text(node: PageElement) -> bool:
    # Comments, CDATA, doctypes etc. are NavigableStrings too, but not script text
    return isinstance(node, NavigableString) and not isinstance(node, PreformattedString)


class TreeWalkService:
    """
    Walks a parsed document and adds everything its scripts need to a ScriptSrc.

    - <script src=...> adds 'self' or a host (the tag body is ignored).
    - <script> without src adds the hash of its text.
    - With include_event_handlers, every attribute starting with "on" is hashed too.

    The first problem found aborts the walk: a document with a malformed
    script tag has no well-defined policy.
    """

    def __init__(self, script_src: ScriptSrc, include_event_handlers: bool = True):
        self.script_src = script_src
        self.include_event_handlers = include_event_handlers

    def walk(self, root: PageElement) -> None:
        # Pre-order over an explicit stack; nesting depth is unbounded
        stack: List[PageElement] = [root]
        while stack:
            node = stack.pop()
            if not isinstance(node, Tag):
                continue

            if node.name == "script":
                self._add_script(node)
                continue

            if self.include_event_handlers:
                self._add_event_handlers(node)

            if node.name in RAW_TEXT_ELEMENTS:
                continue
            stack.extend(reversed(node.contents))

    def _add_event_handlers(self, tag: Tag) -> None:
        for name, value in tag.attrs.items():
            if name.startswith("on"):
                for handler in _attr_values(value):
                    logger.debug("Event handler %s on <%s>", name, tag.name)
                    self.script_src.add_inline(handler)

    def _add_script(self, tag: Tag) -> None:
        src = tag.attrs.get("src")
        if src is not None:
            values = _attr_values(src)
            if len(values) > 1:
                raise DuplicateAttributeError(values[1])
            self.script_src.add_src(values[0])
            return

        # Otherwise this must be an inline script: exactly one child, which is text.
        children = tag.contents
        if not children:
            raise InvalidInlineScriptError("script tag had no src attribute and no content")
        if not _is_text(children[0]):
            raise InvalidInlineScriptError("script tag had a child that was not a text node")
        if len(children) > 1:
            raise InvalidInlineScriptError("script tag had multiple children")
        self.script_src.add_inline(str(children[0]))
