"""
Selector-based document handle used by every source strategy.
Wraps a BeautifulSoup tree so strategies only deal in CSS selectors and cleaned text.
"""
from typing import List, Optional, Union

from bs4 import BeautifulSoup, Tag

from bookscout.parsing.normalize import clean_text


class PageDocument:
    """Read-only view over a parsed HTML page."""

    def __init__(self, soup: BeautifulSoup):
        self.soup = soup

    @classmethod
    def from_html(cls, html: str) -> "PageDocument":
        return cls(BeautifulSoup(html or "", "lxml"))

    @classmethod
    def coerce(cls, document: Union["PageDocument", BeautifulSoup, str]) -> "PageDocument":
        """Accept raw markup, a soup, or an existing handle."""
        if isinstance(document, PageDocument):
            return document
        if isinstance(document, BeautifulSoup):
            return cls(document)
        return cls.from_html(document)

    def select_one(self, selector: str) -> Optional[Tag]:
        return self.soup.select_one(selector)

    def select(self, selector: str) -> List[Tag]:
        return self.soup.select(selector)

    def text(self, selector: str) -> Optional[str]:
        """Whitespace-collapsed text of the first match, or None."""
        return element_text(self.select_one(selector))

    def first_text(self, selectors: List[str]) -> Optional[str]:
        """Text of the first selector that yields non-empty content."""
        for selector in selectors:
            value = self.text(selector)
            if value:
                return value
        return None

    def texts(self, selector: str) -> List[str]:
        """Non-empty texts of every match, in document order."""
        values = []
        for element in self.select(selector):
            value = element_text(element)
            if value:
                values.append(value)
        return values

    def attr(self, selector: str, name: str) -> Optional[str]:
        """Stripped attribute value of the first match carrying it."""
        for element in self.select(selector):
            value = element_attr(element, name)
            if value:
                return value
        return None

    def meta(self, selector: str) -> Optional[str]:
        """``content`` of a meta tag, e.g. ``meta[property="og:image"]``."""
        return self.attr(selector, "content")


def element_text(element: Optional[Tag]) -> Optional[str]:
    if element is None:
        return None
    return clean_text(element.get_text(separator=" "))


def element_attr(element: Optional[Tag], name: str) -> Optional[str]:
    if element is None:
        return None
    value = element.get(name)
    if isinstance(value, list):
        value = " ".join(value)
    return clean_text(value) if isinstance(value, str) else None
