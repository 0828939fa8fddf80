"""Named-counter group walker shared by every counter-bearing section."""

from __future__ import annotations

from typing import Iterable, Iterator

from bindstat.metrics import Counter


def extract(group: Iterable[Counter]) -> Iterator[Counter]:
    """Yield each counter of a group in document order.

    Duplicate names are kept; the schema allows repeats under one scope.
    Stateless, so calling it again on the same list starts over.
    """
    for counter in group:
        yield counter
