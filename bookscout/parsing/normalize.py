"""
Field normalizers for scraped bibliographic data.

Every function here is pure and total: bad input yields ``None`` (or an
empty list), never an exception, and feeding a function its own output
returns the same value.
"""
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Tuple
from urllib.parse import urljoin

from bs4 import BeautifulSoup

_WHITESPACE = re.compile(r"\s+")
_NUMBER_RUN = re.compile(r"\d+(?:,\d{3})*(?:\.\d+)?")
_ISBN_RUN = re.compile(r"[0-9Xx][0-9Xx\- ]*[0-9Xx]")
_ORDINAL = re.compile(r"\b(\d{1,2})(st|nd|rd|th)\b", re.IGNORECASE)
_COMPACT_DATE = re.compile(r"^(\d{1,2})[-/.](\d{1,2})[-/.](\d{2})$")
_ISO_DATE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})")
_YEAR = re.compile(r"\b\d{4}\b")
_PAGES = re.compile(r"(\d{1,5})\s+pages", re.IGNORECASE)
_CSS_URL = re.compile(r"url\(\s*(.*?)\s*\)", re.IGNORECASE)

# Two-digit years at or above the pivot belong to the 1900s.
CENTURY_PIVOT = 70

DATE_FORMATS = (
    "%B %d, %Y",
    "%b %d, %Y",
    "%B %d %Y",
    "%b %d %Y",
    "%d %B %Y",
    "%d %b %Y",
    "%Y/%m/%d",
    "%m/%d/%Y",
    "%Y.%m.%d",
)

GENERIC_TAG_DENYLIST = frozenset({
    "books",
    "kindle store",
    "kindle ebooks",
    "audible books & originals",
    "audiobooks",
    "all categories",
    "...more",
})

_SERIES_NUMBER_PATTERNS = (
    re.compile(r"\b(?:book|volume|vol\.?|part)\s*([\d.]+)", re.IGNORECASE),
    re.compile(r"#\s*([\d.]+)"),
    re.compile(r"^\s*([\d.]+)\s*$"),
)


def clean_text(value: Optional[str]) -> Optional[str]:
    """Collapse runs of whitespace and trim. Empty results become None."""
    if not isinstance(value, str):
        return None
    cleaned = _WHITESPACE.sub(" ", value).strip()
    return cleaned or None


def strip_html(value: Optional[str]) -> Optional[str]:
    """Drop markup from an HTML fragment and collapse whitespace."""
    if not isinstance(value, str) or not value.strip():
        return None
    if "<" not in value:
        return clean_text(value)
    text = BeautifulSoup(value, "lxml").get_text(separator=" ")
    return clean_text(text)


def to_number(value) -> Optional[float]:
    """Return the first decimal-looking run in mixed text ("1,024 pages" -> 1024.0)."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if not isinstance(value, str):
        return None
    match = _NUMBER_RUN.search(value)
    if not match:
        return None
    return float(match.group(0).replace(",", ""))


def to_int(value) -> Optional[int]:
    """Integer form of :func:`to_number`; zero and negatives are treated as absent."""
    number = to_number(value)
    if number is None or number <= 0:
        return None
    return int(number)


def split_list(value: Optional[str], delimiters: str = ",") -> List[str]:
    """Split on any of ``delimiters``, trim, drop empties, keep first occurrence."""
    if not isinstance(value, str):
        return []
    pattern = "[" + re.escape(delimiters) + "]"
    return unique([clean_text(part) for part in re.split(pattern, value)])


def unique(values: Iterable[Optional[str]]) -> List[str]:
    """Order-preserving de-duplication that drops empty entries."""
    seen = set()
    result = []
    for value in values:
        if not value or value in seen:
            continue
        seen.add(value)
        result.append(value)
    return result


# =========================================================================
# IDENTIFIERS
# =========================================================================

def normalize_identifier(value) -> Optional[str]:
    """Strip everything but letters and digits and upper-case the rest."""
    if isinstance(value, int) and not isinstance(value, bool):
        value = str(value)
    if not isinstance(value, str):
        return None
    cleaned = re.sub(r"[^0-9A-Za-z]", "", value).upper()
    return cleaned or None


def normalize_isbn(value, length: int) -> Optional[str]:
    """
    Find an ISBN of the given length (10 or 13) inside free text.

    Each digit run (hyphens and spaces allowed inside) is stripped and
    accepted only when its length matches. ``X`` is only valid as the
    ISBN-10 check digit.
    """
    if isinstance(value, int) and not isinstance(value, bool):
        value = str(value)
    if not isinstance(value, str):
        return None
    for match in _ISBN_RUN.finditer(value):
        run = match.group(0)
        # "1111111111 9781111111111" is two identifiers, not one long run
        for chunk in [run] + run.split():
            candidate = re.sub(r"[^0-9Xx]", "", chunk).upper()
            if len(candidate) != length:
                continue
            if length == 10 and re.fullmatch(r"\d{9}[\dX]", candidate):
                return candidate
            if length == 13 and candidate.isdigit():
                return candidate
    return None


def normalize_asin(value) -> Optional[str]:
    """Amazon/Audible product ids: alphanumerics only, upper-cased."""
    return normalize_identifier(value)


# =========================================================================
# DATES
# =========================================================================

def normalize_date(value) -> Optional[str]:
    """
    Canonicalize a calendar date to ``YYYY-MM-DD``.

    Text that is not a full calendar date (a bare year, "March 2020") is
    returned unchanged rather than padded with an invented day.
    """
    text = clean_text(value) if isinstance(value, str) else None
    if not text:
        return None

    iso = _ISO_DATE.match(text)
    if iso and _valid_date(int(iso.group(1)), int(iso.group(2)), int(iso.group(3))):
        return iso.group(0)

    compact = _COMPACT_DATE.match(text)
    if compact:
        month, day, short_year = (int(part) for part in compact.groups())
        year = short_year + (1900 if short_year >= CENTURY_PIVOT else 2000)
        if _valid_date(year, month, day):
            return f"{year:04d}-{month:02d}-{day:02d}"
        return text

    candidate = _ORDINAL.sub(r"\1", text)
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(candidate, fmt).strftime("%Y-%m-%d")
        except ValueError:
            continue
    return text


def epoch_millis_to_date(value) -> Optional[str]:
    """Goodreads stores publication time as epoch milliseconds."""
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value != value:
        return None
    try:
        moment = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None
    return moment.strftime("%Y-%m-%d")


def _valid_date(year: int, month: int, day: int) -> bool:
    try:
        datetime(year, month, day)
    except ValueError:
        return False
    return True


# =========================================================================
# SERIES
# =========================================================================

def parse_series_number(value) -> Optional[str]:
    """
    Pull a series position out of "Book 3 of 5", "#2", "Volume 4" or "2".

    Zero placeholders and non-numeric text are rejected.
    """
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        value = f"{value:g}"
    text = clean_text(value) if isinstance(value, str) else None
    if not text:
        return None
    for pattern in _SERIES_NUMBER_PATTERNS:
        match = pattern.search(text)
        if not match:
            continue
        number = match.group(1).strip(".")
        if not number or not re.fullmatch(r"\d+(?:\.\d+)?", number):
            continue
        if float(number) == 0:
            return None
        return number
    return None


def parse_series_label(value) -> Tuple[Optional[str], Optional[str]]:
    """
    Split a free-text series label into ``(name, number)``.

    Handles "Book 2 of 4: Saga", "Book 1 of Riftwar Saga Series",
    "(Saga, #2)", "Saga #2" and "Saga, Book 2".
    """
    text = clean_text(value)
    if not text:
        return None, None
    text = text.strip("()").strip()

    match = re.match(r"(?:Book|Volume)\s+([\d.]+)\s+of\s+\d+\s*:\s*(.+)$", text, re.IGNORECASE)
    if match:
        return clean_text(match.group(2)), parse_series_number(match.group(1))

    match = re.match(r"(?:Book|Volume)\s+([\d.]+)\s+of\s+(.+)$", text, re.IGNORECASE)
    if match and not match.group(2).strip().isdigit():
        return clean_text(match.group(2)), parse_series_number(match.group(1))

    match = re.match(r"(.+?),?\s*#\s*([\d.]+)$", text)
    if match:
        return clean_text(match.group(1).rstrip(",")), parse_series_number(match.group(2))

    match = re.match(r"(.+?),\s*(?:Book|Volume)\s+([\d.]+)$", text, re.IGNORECASE)
    if match:
        return clean_text(match.group(1)), parse_series_number(match.group(2))

    return text, None


# =========================================================================
# PUBLISHER / DATE COMPOUND FIELDS
# =========================================================================

@dataclass(frozen=True)
class PublisherDetails:
    """Result of decomposing a compound publisher field."""
    publisher: Optional[str] = None
    publish_date: Optional[str] = None
    page_count: Optional[int] = None


def strip_publisher(value) -> Optional[str]:
    """Drop parenthetical and ``;``-separated suffixes from a publisher name."""
    text = clean_text(value)
    if not text:
        return None
    return clean_text(re.split(r"[(;]", text, maxsplit=1)[0])


def split_publisher_details(value) -> PublisherDetails:
    """
    Decompose "Example House (January 1, 2020)" or
    "Harper Voyager, 2012 - Fiction - 841 pages" into publisher, date and pages.
    """
    text = clean_text(value)
    if not text:
        return PublisherDetails()

    pages = _PAGES.search(text)
    page_count = to_int(pages.group(1)) if pages else None

    if "(" in text:
        publisher = strip_publisher(text)
        publish_date = None
        parenthetical = re.search(r"\(([^)]+)\)", text)
        if parenthetical and re.search(r"\d", parenthetical.group(1)):
            publish_date = clean_text(parenthetical.group(1))
        return PublisherDetails(publisher, publish_date, page_count)

    parts = [part for part in (clean_text(p) for p in text.split(",")) if part]
    if not parts:
        return PublisherDetails(page_count=page_count)
    publisher = strip_publisher(parts[0])
    publish_date = None
    remainder = clean_text(", ".join(parts[1:]))
    if remainder:
        candidate = clean_text(re.split(r"\s+-\s+", remainder)[0])
        if candidate and _YEAR.search(candidate) and not _PAGES.search(candidate):
            publish_date = candidate
    return PublisherDetails(publisher, publish_date, page_count)


# =========================================================================
# TAGS
# =========================================================================

def normalize_tags(values: Iterable[Optional[str]], extra_denylist: Iterable[str] = ()) -> List[str]:
    """
    Union tag candidates into a case and whitespace-insensitive set.

    The first spelling seen wins. Generic store-navigation terms are dropped.
    """
    denylist = set(GENERIC_TAG_DENYLIST)
    denylist.update(term.lower() for term in extra_denylist)
    seen = set()
    tags = []
    for value in values:
        tag = clean_text(value) if isinstance(value, str) else None
        if not tag:
            continue
        key = tag.lower()
        if key in denylist or key in seen:
            continue
        seen.add(key)
        tags.append(tag)
    return tags


# =========================================================================
# URLS
# =========================================================================

def normalize_url(value, base_url: Optional[str] = None) -> Optional[str]:
    """
    Normalize an image reference into an absolute URL.

    Strips ``url(...)`` wrappers and quotes, upgrades protocol-relative
    references to https and resolves relative paths against ``base_url``.
    """
    if not isinstance(value, str):
        return None
    text = value.strip()
    wrapped = _CSS_URL.search(text)
    if wrapped:
        text = wrapped.group(1)
    text = text.strip().strip("'\"").strip()
    if not text or text.lower().startswith(("data:", "javascript:")):
        return None
    if text.startswith("//"):
        return "https:" + text
    if re.match(r"^https?://", text, re.IGNORECASE):
        return text
    if base_url:
        joined = urljoin(base_url, text)
        if re.match(r"^https?://", joined, re.IGNORECASE):
            return joined
    return None


def upgrade_https(value: Optional[str]) -> Optional[str]:
    """Rewrite an ``http://`` URL to ``https://``."""
    if not isinstance(value, str):
        return None
    return re.sub(r"^http://", "https://", value.strip(), flags=re.IGNORECASE) or None
