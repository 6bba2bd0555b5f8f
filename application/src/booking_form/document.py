"""Minimal typed HTML node tree. Escaping is decided by node type, not by call sites."""

from __future__ import annotations

import html
import json
from dataclasses import dataclass, field
from typing import Any, Iterator, Union

VOID_TAGS = frozenset({"meta", "link", "input", "br", "img", "hr"})
RAW_TEXT_TAGS = frozenset({"script", "style"})

AttrValue = Union[str, int, bool, None]


@dataclass
class Text:
    """Escaped character data."""
    value: str

    def render(self) -> str:
        return html.escape(self.value, quote=False)


@dataclass
class RawText:
    """Unescaped body; only valid as the child of <script> or <style>."""
    value: str

    def render(self) -> str:
        return self.value


@dataclass
class Element:
    tag: str
    attrs: dict[str, AttrValue] = field(default_factory=dict)
    children: list["Node"] = field(default_factory=list)

    def render(self) -> str:
        parts = [f"<{self.tag}"]
        for name, value in self.attrs.items():
            if value is None or value is False:
                continue
            if value is True:
                parts.append(f" {name}")
            else:
                parts.append(f' {name}="{html.escape(str(value), quote=True)}"')
        parts.append(">")
        if self.tag in VOID_TAGS:
            return "".join(parts)
        for child in self.children:
            if isinstance(child, RawText) and self.tag not in RAW_TEXT_TAGS:
                raise ValueError(f"raw text is not allowed inside <{self.tag}>")
            parts.append(child.render())
        parts.append(f"</{self.tag}>")
        return "".join(parts)

    def walk(self) -> Iterator["Element"]:
        yield self
        for child in self.children:
            if isinstance(child, Element):
                yield from child.walk()


Node = Union[Element, Text, RawText]
Child = Union[Node, str, None]


def h(tag: str, attrs: dict[str, AttrValue] | None = None, *children: Child) -> Element:
    """Element shorthand. Plain strings become Text; None children are skipped."""
    nodes: list[Node] = []
    for child in children:
        if child is None:
            continue
        if isinstance(child, str):
            nodes.append(Text(child))
        elif isinstance(child, (list, tuple)):
            nodes.extend(Text(c) if isinstance(c, str) else c for c in child if c is not None)
        else:
            nodes.append(child)
    return Element(tag, dict(attrs or {}), nodes)


def render_document(root: Element) -> str:
    return "<!DOCTYPE html>\n" + root.render() + "\n"


def collect_actions(root: Element) -> list[str]:
    """Distinct data-action names in document order."""
    seen: list[str] = []
    for el in root.walk():
        action = el.attrs.get("data-action")
        if isinstance(action, str) and action not in seen:
            seen.append(action)
    return seen


def script_json(value: Any) -> str:
    """JSON safe to embed inside a <script> body."""
    text = json.dumps(value, ensure_ascii=False, separators=(",", ":"))
    return (
        text.replace("<", "\\u003c")
        .replace("\u2028", "\\u2028")
        .replace("\u2029", "\\u2029")
    )
