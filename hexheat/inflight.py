"""
Duplicate suppression for expensive cache builds.

Concurrent callers asking for the same missing key share one computation:
the first caller runs it, the others block on its Future.
"""
from __future__ import annotations

import threading
from concurrent.futures import Future
from typing import Callable, Dict, Hashable, Tuple, Type, TypeVar

T = TypeVar("T")


class InFlight:
    def __init__(self):
        self._lock = threading.Lock()
        self._calls: Dict[Hashable, Future] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._calls)

    def run(
        self,
        key: Hashable,
        fn: Callable[[], T],
        retry_on: Tuple[Type[BaseException], ...] = (),
    ) -> T:
        """
        Run ``fn`` for ``key`` unless a call for ``key`` is already running.

        Followers re-raise the leader's exception, except for ``retry_on``
        types: those belong to the leader alone (e.g. its cancellation) and
        the follower takes another turn instead.
        """
        while True:
            with self._lock:
                fut = self._calls.get(key)
                leader = fut is None
                if leader:
                    fut = Future()
                    self._calls[key] = fut
            if leader:
                break
            try:
                return fut.result()
            except retry_on:
                continue

        try:
            result = fn()
        except BaseException as exc:
            fut.set_exception(exc)
            raise
        else:
            fut.set_result(result)
            return result
        finally:
            with self._lock:
                self._calls.pop(key, None)
