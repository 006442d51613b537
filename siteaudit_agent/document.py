"""
Tolerant, case-insensitive queryable view over fetched markup.

The tree is built with BeautifulSoup (lxml, falling back to the stdlib
html.parser). Detectors only read from it; nothing here mutates the soup after
construction.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterator
from urllib.parse import urlparse

from bs4 import BeautifulSoup, Tag
from bs4.element import NavigableString

from .errors import ParseFailure

_NON_TEXT_PARENTS = {"script", "style", "noscript", "template"}


def _soup_of(markup: str) -> BeautifulSoup:
    try:
        return BeautifulSoup(markup, "lxml")
    except Exception:
        return BeautifulSoup(markup, "html.parser")


@dataclass
class ParsedDocument:
    url: str
    raw: str
    soup: BeautifulSoup

    @property
    def hostname(self) -> str:
        return (urlparse(self.url).hostname or "").lower()

    def find_all(self, *names: str) -> list[Tag]:
        return list(self.soup.find_all([n.lower() for n in names]))

    def select(self, predicate: Callable[[Tag], bool], root: Tag | None = None) -> list[Tag]:
        scope = root if root is not None else self.soup
        return [el for el in scope.find_all(True) if predicate(el)]

    def with_attr_containing(self, attr: str, token: str, root: Tag | None = None) -> list[Tag]:
        needle = token.lower()

        def matches(el: Tag) -> bool:
            value = self.attr(el, attr)
            return value is not None and needle in value.lower()

        return self.select(matches, root)

    @staticmethod
    def attr(el: Tag, name: str) -> str | None:
        value = el.get(name)
        if value is None:
            return None
        if isinstance(value, (list, tuple)):
            value = " ".join(value)
        return str(value).strip()

    @staticmethod
    def has_attr(el: Tag, name: str) -> bool:
        return el.has_attr(name)

    @staticmethod
    def text(el: Tag) -> str:
        return el.get_text()

    def _body_strings(self) -> Iterator[str]:
        root = self.soup.body or self.soup
        for s in root.find_all(string=True):
            if type(s) is not NavigableString:
                # comments, doctype, script and style strings
                continue
            if s.parent is not None and s.parent.name in _NON_TEXT_PARENTS:
                continue
            yield str(s)

    def body_text(self) -> str:
        return " ".join(self._body_strings())

    def outer_html(self, el: Tag | None = None) -> str:
        return str(el if el is not None else self.soup)


def parse_document(markup: str | None, url: str) -> ParsedDocument:
    if markup is None or not markup.strip():
        raise ParseFailure("Empty document: nothing to analyze")
    try:
        soup = _soup_of(markup)
    except Exception as e:
        raise ParseFailure(f"Markup could not be parsed: {e}") from e
    return ParsedDocument(url=url, raw=markup, soup=soup)
