"""
Pending/confirmed wrapper for server-owned entities.

The confirmed value is whatever the backend last returned. Local edits go to
a deep-copied staging value; `commit()` swaps in the server's answer and
`discard()` throws the staging copy away, so a rejected request never leaks
into the confirmed state.
"""
from __future__ import annotations

import copy
from typing import Callable, Generic, Optional, TypeVar

T = TypeVar("T")


class Staged(Generic[T]):
    def __init__(self, confirmed: T):
        self._confirmed = confirmed
        self._staging: Optional[T] = None

    @property
    def confirmed(self) -> T:
        return self._confirmed

    @property
    def staging(self) -> Optional[T]:
        return self._staging

    @property
    def is_pending(self) -> bool:
        return self._staging is not None

    @property
    def current(self) -> T:
        """What the operator sees: the staging copy if any, else confirmed."""
        return self._staging if self._staging is not None else self._confirmed

    def stage(self, mutate: Optional[Callable[[T], None]] = None) -> T:
        if self._staging is None:
            self._staging = copy.deepcopy(self._confirmed)
        if mutate is not None:
            mutate(self._staging)
        return self._staging

    def commit(self, server_value: Optional[T] = None) -> T:
        """Adopt the server's value (or the staging copy when none is given)."""
        if server_value is not None:
            self._confirmed = server_value
        elif self._staging is not None:
            self._confirmed = self._staging
        self._staging = None
        return self._confirmed

    def discard(self) -> T:
        self._staging = None
        return self._confirmed
