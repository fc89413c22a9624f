"""Shared pytest fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

FIXTURES_DIR = Path(__file__).parent / "fixtures"


def _read_fixture(name: str) -> str:
    return (FIXTURES_DIR / name).read_text(encoding="utf-8")


@pytest.fixture
def article_html() -> str:
    return _read_fixture("article.html")


@pytest.fixture
def clutter_html() -> str:
    return _read_fixture("clutter.html")


@pytest.fixture
def short_article_html() -> str:
    return _read_fixture("short_article.html")


@pytest.fixture
def og_title_html() -> str:
    return _read_fixture("og_title.html")


@pytest.fixture
def farcaster_html() -> str:
    return _read_fixture("farcaster.html")


@pytest.fixture
def article_body_html() -> str:
    return _read_fixture("article_body.html")


@pytest.fixture
def article_body_summary_html() -> str:
    return _read_fixture("article_body_summary.html")


@pytest.fixture
def broken_jsonld_html() -> str:
    return _read_fixture("broken_jsonld.html")


@pytest.fixture
def fixtures_dir() -> Path:
    return FIXTURES_DIR
