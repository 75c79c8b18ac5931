"""Cancellation tokens for wizard steps.

Abandoning a step does not abort the HTTP request underneath; the call is
left to finish and whatever it returns is thrown away.
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass
from typing import Awaitable, Generic, Optional, TypeVar

T = TypeVar("T")

_ids = itertools.count(1)


class CancellationToken:
    def __init__(self, label: str) -> None:
        self.label = label
        self.id = next(_ids)
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True

    def __repr__(self) -> str:
        state = "cancelled" if self._cancelled else "active"
        return f"<CancellationToken {self.label}#{self.id} {state}>"


@dataclass
class Settled(Generic[T]):
    """Outcome of a guarded call: a value, an error, or stale."""

    value: Optional[T] = None
    error: Optional[Exception] = None
    stale: bool = False


async def settle(token: CancellationToken, call: Awaitable[T], *expected: type) -> Settled[T]:
    """Await `call`, capturing errors of the `expected` types.

    Once the token is cancelled the outcome is marked stale regardless of
    what the call produced.
    """
    try:
        value = await call
    except expected as e:
        if token.cancelled:
            return Settled(stale=True)
        return Settled(error=e)
    if token.cancelled:
        return Settled(stale=True)
    return Settled(value=value)
