"""
Source strategy contract shared by every provider adapter.
"""
from typing import Callable, Iterable, List, Optional, Protocol, TypeVar, runtime_checkable
from urllib.parse import urlparse, ParseResult

from bookscout.models.book import BookRecord
from bookscout.parsing.document import PageDocument
from bookscout.utils.logger import LayerLogger

T = TypeVar("T")


@runtime_checkable
class SourceStrategy(Protocol):
    """
    Matcher + extractor pair for one source provider.

    ``matches`` must be cheap and side-effect free. ``extract`` returns
    None when the page has no usable title.
    """

    id: str

    def matches(self, url: str) -> bool:
        ...

    async def extract(
        self,
        document: PageDocument,
        url: str,
        logger: Optional[LayerLogger] = None,
    ) -> Optional[BookRecord]:
        ...


def first_of(candidates: Iterable[Callable[[], Optional[T]]]) -> Optional[T]:
    """
    Evaluate candidate producers in order and return the first non-empty value.

    Each field keeps its own ordered list of producers, so the fallback
    policy stays declarative and fields resolve independently.
    """
    for candidate in candidates:
        value = candidate()
        if value not in (None, "", [], {}):
            return value
    return None


def first_list(candidates: Iterable[Callable[[], List[T]]]) -> List[T]:
    """List-valued :func:`first_of`: the first producer with any entries wins."""
    return first_of(candidates) or []


def parse_url(url: str) -> Optional[ParseResult]:
    """Parse an absolute page address, or None when it has no host."""
    try:
        parsed = urlparse(url)
    except (TypeError, ValueError):
        return None
    if not parsed.netloc:
        return None
    return parsed


def hostname(url: str) -> str:
    parsed = parse_url(url)
    return (parsed.hostname or "").lower() if parsed else ""
