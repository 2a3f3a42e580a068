"""
Dispatch Layer for BookScout.
Picks the one source strategy that owns a page address.
"""
from typing import List, Optional, Sequence

from bookscout.adapters.amazon import AmazonAdapter
from bookscout.adapters.audible import AudibleAdapter
from bookscout.adapters.base import SourceStrategy
from bookscout.adapters.goodreads import GoodreadsAdapter
from bookscout.adapters.google_books import GoogleBooksAdapter
from bookscout.utils.logger import LayerLogger


def default_strategies() -> List[SourceStrategy]:
    """Registered strategies in lookup order."""
    return [
        GoodreadsAdapter(),
        AmazonAdapter(),
        AudibleAdapter(),
        GoogleBooksAdapter(),
    ]


class SourceDispatcher:
    """
    Ordered registry of source strategies.

    The first strategy whose ``matches`` accepts the address wins; an
    address no strategy accepts selects nothing.
    """

    def __init__(self, strategies: Optional[Sequence[SourceStrategy]] = None):
        self.strategies: List[SourceStrategy] = list(
            strategies if strategies is not None else default_strategies()
        )
        self.logger = LayerLogger("dispatch_layer")

    def select(self, url: str) -> Optional[SourceStrategy]:
        for strategy in self.strategies:
            if strategy.matches(url):
                self.logger.log_decision(
                    decision=f"use_{strategy.id}",
                    reason="Address matched strategy",
                    url=url,
                )
                return strategy

        self.logger.log_decision(
            decision="no_strategy",
            reason="No registered strategy matches this address",
            url=url,
        )
        return None

    def ids(self) -> List[str]:
        return [strategy.id for strategy in self.strategies]
