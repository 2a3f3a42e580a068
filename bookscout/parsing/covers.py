"""
Cover-image resolution.

Each source declares an ordered chain of candidate producers; the first
candidate that survives URL normalization wins. Producers are small
closures over the document so a chain reads as a priority list.
"""
import re
from typing import Any, Callable, Iterable, Optional

from bookscout.parsing.document import PageDocument, element_attr
from bookscout.parsing.normalize import normalize_url
from bookscout.parsing.payloads import decode_json
from bookscout.utils.logger import LayerLogger

CoverCandidate = Callable[[], Optional[str]]

_BACKGROUND_IMAGE = re.compile(r"background(?:-image)?\s*:[^;]*?url\(\s*([^)]*?)\s*\)", re.IGNORECASE)
# Candidates end at a comma plus whitespace or right after a descriptor;
# URLs such as "._AC_SR320,320_.jpg" keep their own commas.
_SRCSET_SEPARATOR = re.compile(r",\s+|(?<=\d[wx]),")


def resolve_cover(
    candidates: Iterable[CoverCandidate],
    base_url: Optional[str] = None,
) -> Optional[str]:
    """Return the first candidate that normalizes to a non-empty absolute URL."""
    for candidate in candidates:
        url = normalize_url(candidate(), base_url)
        if url:
            return url
    return None


def largest_srcset_entry(srcset: Optional[str]) -> Optional[str]:
    """Last URL of a responsive candidate list (entries ascend in quality)."""
    if not srcset:
        return None
    entries = [entry.strip() for entry in _SRCSET_SEPARATOR.split(srcset) if entry.strip().strip(",")]
    if not entries:
        return None
    return entries[-1].split()[0].rstrip(",") or None


def largest_dynamic_image(raw: Optional[str], logger: Optional[LayerLogger] = None) -> Optional[str]:
    """
    Pick the URL with the largest declared area from a dynamic-image blob
    such as ``{"https://a.jpg": [500, 500], "https://b.jpg": [218, 218]}``.
    """
    data = decode_json(raw, logger, origin="dynamic_image")
    if not isinstance(data, dict):
        return None
    best_url = None
    best_area = -1.0
    for url, size in data.items():
        area = _area(size)
        if area > best_area:
            best_url, best_area = url, area
    return best_url


def background_image(style: Optional[str]) -> Optional[str]:
    """URL from a ``background-image: url(...)`` style declaration."""
    if not style:
        return None
    match = _BACKGROUND_IMAGE.search(style)
    return match.group(1) if match else None


def _area(size: Any) -> float:
    if isinstance(size, (list, tuple)) and len(size) >= 2:
        width, height = size[0], size[1]
        if isinstance(width, (int, float)) and isinstance(height, (int, float)):
            return float(width) * float(height)
    return 0.0


# =========================================================================
# CANDIDATE PRODUCERS
# =========================================================================

def from_attribute(document: PageDocument, selector: str, attribute: str) -> CoverCandidate:
    return lambda: document.attr(selector, attribute)


def from_srcset(document: PageDocument, selector: str) -> CoverCandidate:
    def candidate() -> Optional[str]:
        for element in document.select(selector):
            url = largest_srcset_entry(
                element_attr(element, "srcset") or element_attr(element, "data-srcset")
            )
            if url:
                return url
        return None
    return candidate


def from_dynamic_image(
    document: PageDocument,
    selector: str = "[data-a-dynamic-image]",
    logger: Optional[LayerLogger] = None,
) -> CoverCandidate:
    def candidate() -> Optional[str]:
        for element in document.select(selector):
            url = largest_dynamic_image(element.get("data-a-dynamic-image"), logger)
            if url:
                return url
        return None
    return candidate


def from_background(document: PageDocument, selector: str) -> CoverCandidate:
    def candidate() -> Optional[str]:
        for element in document.select(selector):
            url = background_image(element_attr(element, "style"))
            if url:
                return url
        return None
    return candidate


def from_meta(document: PageDocument, selector: str) -> CoverCandidate:
    return lambda: document.meta(selector)


def from_value(value: Optional[str]) -> CoverCandidate:
    """Wrap a value already pulled from a structured payload."""
    return lambda: value if isinstance(value, str) else None
