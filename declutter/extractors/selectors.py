"""CSS selector matching for the streaming scan, backed by soupsieve.

The scanner never builds a document tree, so :class:`OpenElements` mirrors
just enough of one for soupsieve to work on: the chain of open elements and
the earlier siblings of each, as empty bs4 tags.  When an element closes its
mirrored children are dropped, so the mirror never grows past the open path
and its siblings.

Selectors are evaluated as an element opens.  Anything that depends on what
comes later in the document (``:empty``, ``:last-child``, ``:has()``) sees
the element before its content has arrived.
"""

from __future__ import annotations

import functools
from collections.abc import Iterable, Mapping
from dataclasses import dataclass

import soupsieve as sv
from bs4 import BeautifulSoup, Tag


@dataclass(frozen=True)
class Element:
    """An open element: its name, raw attributes and its mirror tag."""

    tag: str
    attrs: Mapping[str, str]
    node: Tag


class OpenElements:
    """Stack of open elements mirrored into a text-free bs4 tree."""

    def __init__(self) -> None:
        self._soup = BeautifulSoup(features="lxml")
        self._stack: list[Element] = []

    def __len__(self) -> int:
        return len(self._stack)

    def __getitem__(self, index: int) -> Element:
        return self._stack[index]

    def push(self, tag: str, attrs: Mapping[str, str]) -> Element:
        node = self._soup.new_tag(tag or "unknown", attrs=dict(attrs))
        parent = self._stack[-1].node if self._stack else self._soup
        parent.append(node)
        element = Element(tag, attrs, node)
        self._stack.append(element)
        return element

    def pop(self) -> Element:
        element = self._stack.pop()
        element.node.clear()
        return element


@dataclass(frozen=True)
class SelectorGroup:
    """Any number of selectors compiled into one soupsieve selector list."""

    sources: tuple[str, ...]
    compiled: sv.SoupSieve | None

    def matches(self, element: Element) -> bool:
        return self.compiled is not None and self.compiled.match(element.node)


def compile_selector(text: str) -> sv.SoupSieve:
    """Compile one selector (or selector list).

    Raises ``ValueError`` when soupsieve rejects the syntax or does not
    support it (pseudo-elements, at-rules).
    """
    if not isinstance(text, str) or not text.strip():
        raise ValueError("selector must be a non-empty string")
    try:
        return sv.compile(text)
    except (sv.SelectorSyntaxError, NotImplementedError) as exc:
        raise ValueError(f"invalid selector {text!r}: {exc}") from exc


@functools.lru_cache(maxsize=256)
def _compile_group(sources: tuple[str, ...]) -> SelectorGroup:
    for source in sources:
        compile_selector(source)
    compiled = sv.compile(", ".join(sources)) if sources else None
    return SelectorGroup(sources, compiled)


def compile_selectors(texts: Iterable[str]) -> SelectorGroup:
    """Compile a collection of selectors into one group, in sorted order."""
    return _compile_group(tuple(sorted(set(texts))))
