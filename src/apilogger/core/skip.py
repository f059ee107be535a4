"""Static rules exempting endpoints from event emission."""

from typing import FrozenSet, Iterable

import structlog

logger = structlog.get_logger(__name__)


def route_key(method: str, path: str) -> str:
    """Lookup key in ``METHOD::path`` form."""
    return f"{method.upper()}::{path}"


class SkipFilter:
    """
    Exact (method, path) matcher built once at startup.

    Rules are given as ``METHOD::path`` strings; the method part is
    normalised to upper case.
    """

    def __init__(self, rules: Iterable[str] = ()) -> None:
        normalised = set()
        for rule in rules:
            method, sep, path = rule.partition("::")
            if not sep:
                logger.warning("Ignoring malformed skip rule", rule=rule)
                continue
            normalised.add(route_key(method, path))
        self.rules: FrozenSet[str] = frozenset(normalised)

    def should_skip(self, method: str, path: str) -> bool:
        return route_key(method, path) in self.rules

    def __len__(self) -> int:
        return len(self.rules)
