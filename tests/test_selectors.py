"""Unit tests for selector matching against the open-element stack."""

from __future__ import annotations

import pytest

from declutter.extractors.selectors import OpenElements, compile_selector, compile_selectors


def _open(*specs: tuple[str, dict[str, str]]) -> OpenElements:
    stack = OpenElements()
    for tag, attrs in specs:
        stack.push(tag, attrs)
    return stack


def _matches(selector: str, stack: OpenElements) -> bool:
    return compile_selectors([selector]).matches(stack[-1])


class TestCompoundMatching:
    def test_tag(self):
        assert _matches("nav", _open(("html", {}), ("nav", {})))
        assert not _matches("nav", _open(("html", {}), ("div", {})))

    def test_class_and_id(self):
        assert _matches("div.post#main", _open(("div", {"class": "post wide", "id": "main"})))
        assert not _matches("div.post#main", _open(("div", {"class": "post", "id": "other"})))

    def test_multiple_classes_required(self):
        assert _matches(".a.b", _open(("p", {"class": "b a"})))
        assert not _matches(".a.b", _open(("p", {"class": "a"})))

    @pytest.mark.parametrize(
        ("selector", "attr", "value", "expected"),
        [
            ('[role="main"]', "role", "main", True),
            ('[role="main"]', "role", "mainly", False),
            ("[rel~=icon]", "rel", "shortcut icon", True),
            ("[lang|=en]", "lang", "en-US", True),
            ("[data-x^=ab]", "data-x", "abc", True),
            ("[data-x$=bc]", "data-x", "abc", True),
            ("[data-x*=b]", "data-x", "abc", True),
        ],
    )
    def test_attribute_operators(self, selector, attr, value, expected):
        assert _matches(selector, _open(("div", {attr: value}))) is expected

    def test_negation_and_is(self):
        stack = _open(("div", {"class": "promo keep"}))
        assert not _matches(".promo:not(.keep)", stack)
        assert _matches(":is(.promo, .ad)", stack)


class TestCombinators:
    def test_descendant_and_child(self):
        stack = _open(("article", {}), ("div", {}), ("p", {}))
        assert _matches("article p", stack)
        assert not _matches("article > p", stack)
        assert _matches("article > div > p", stack)

    def test_adjacent_sibling(self):
        stack = _open(("body", {}), ("h1", {}))
        stack.pop()
        stack.push("p", {})
        assert _matches("h1 + p", stack)
        assert _matches("h1 ~ p", stack)
        assert _matches("p:first-of-type", stack)

    def test_closed_subtree_forgotten(self):
        stack = _open(("body", {}), ("div", {"class": "box"}), ("span", {}))
        stack.pop()
        stack.pop()
        stack.push("p", {})
        assert not _matches(".box span", stack)
        assert _matches("div.box + p", stack)

    def test_selector_list(self):
        group = compile_selectors(["nav", ".promo"])
        assert group.matches(_open(("div", {"class": "promo"}))[-1])
        assert group.matches(_open(("nav", {}))[-1])


class TestCompile:
    @pytest.mark.parametrize("selector", ["div[", "a >", "", "   ", "p:unknown-pseudo", "p::before"])
    def test_rejected(self, selector):
        with pytest.raises(ValueError):
            compile_selector(selector)

    def test_group_rejects_invalid_member(self):
        with pytest.raises(ValueError):
            compile_selectors(["nav", "div["])

    def test_empty_group_matches_nothing(self):
        assert not compile_selectors([]).matches(_open(("div", {}))[-1])

    def test_group_sources_sorted(self):
        assert compile_selectors({".b", ".a"}).sources == (".a", ".b")
