# src/app/services/sequencing.py
from __future__ import annotations


class RequestSequence:
    """
    Monotonic ticket counter for requests that resolve later.

    Every trigger takes a ticket with `issue()`. When its result arrives, it may
    only be applied if `is_current(ticket)`: a later trigger makes all earlier
    tickets stale, whatever order the results come back in.
    """

    def __init__(self) -> None:
        self._latest = 0

    @property
    def latest(self) -> int:
        return self._latest

    def issue(self) -> int:
        self._latest += 1
        return self._latest

    def is_current(self, ticket: int) -> bool:
        return ticket == self._latest

    def invalidate(self) -> None:
        # Makes every outstanding ticket stale without starting a request.
        self._latest += 1
