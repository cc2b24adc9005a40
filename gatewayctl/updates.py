"""Queued write-back of status changes to stored objects."""

from __future__ import annotations

import logging
import queue
import random
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Protocol

from gatewayctl.api import Condition, Gateway, GatewayClass, NamespacedName

Mutator = Callable[[Any], Any]


class ConflictError(Exception):
    """Raised by a client when a write conflicts with a newer version."""


class _Client(Protocol):
    def get(self, resource: type, key: NamespacedName) -> Any: ...

    def update_status(self, obj: Any) -> None: ...


@dataclass
class Update:
    """Everything needed to update the status of one object."""

    namespaced_name: NamespacedName
    resource: type
    mutator: Mutator


@dataclass(frozen=True)
class _Backoff:
    steps: int = 4
    duration: float = 0.01
    factor: float = 5.0
    jitter: float = 0.1


_DEFAULT_BACKOFF = _Backoff()


def _retry_on_conflict(
    backoff: _Backoff, attempt: Callable[[], None], sleep: Callable[[float], None]
) -> None:
    delay = backoff.duration
    for step in range(backoff.steps):
        try:
            attempt()
            return
        except ConflictError:
            if step == backoff.steps - 1:
                raise
            sleep(delay * (1 + random.random() * backoff.jitter))
            delay *= backoff.factor


def _conditions_key(conditions: list[Condition]) -> list[tuple]:
    return [
        (c.type, c.status, c.reason, c.message, c.observed_generation) for c in conditions
    ]


def is_status_equal(a: Any, b: Any) -> bool:
    """Tell whether two gateway classes or gateways have equivalent status.

    Transition times are ignored; other object types never compare equal.
    """
    if type(a) is not type(b):
        return False
    if isinstance(a, GatewayClass):
        return _conditions_key(a.conditions) == _conditions_key(b.conditions)
    if isinstance(a, Gateway):
        return a.addresses == b.addresses and _conditions_key(a.conditions) == _conditions_key(
            b.conditions
        )
    return False


class UpdateWriter:
    """Passes updates to an UpdateHandler once it has started."""

    def __init__(self, enabled: threading.Event, updates: queue.Queue) -> None:
        self._enabled = enabled
        self._updates = updates

    @property
    def enabled(self) -> bool:
        return self._enabled.is_set()

    def send(self, update: Update) -> None:
        """Queue ``update``; it is dropped while the handler has not started."""
        if self._enabled.is_set():
            self._updates.put(update)


class UpdateHandler:
    """Applies queued status updates through a client."""

    def __init__(
        self,
        client: _Client,
        logger: logging.Logger | None = None,
        *,
        queue_size: int = 100,
        poll_interval: float = 0.05,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._client = client
        self._log = logger or logging.getLogger(__name__)
        self._enabled = threading.Event()
        self._updates: queue.Queue[Update] = queue.Queue(maxsize=queue_size)
        self._poll_interval = poll_interval
        self._sleep = sleep

    def _apply(self, update: Update) -> None:
        key = update.namespaced_name

        def attempt() -> None:
            obj = self._client.get(update.resource, key)
            new_obj = update.mutator(obj)
            if is_status_equal(obj, new_obj):
                self._log.info(
                    "status unchanged, bypassing update name=%s namespace=%s",
                    key.name,
                    key.namespace,
                )
                return
            self._client.update_status(new_obj)

        try:
            _retry_on_conflict(_DEFAULT_BACKOFF, attempt, self._sleep)
        except Exception:
            self._log.exception(
                "unable to update status name=%s namespace=%s", key.name, key.namespace
            )

    def need_leader_election(self) -> bool:
        return True

    def start(self, stop_event: threading.Event) -> None:
        """Process updates until ``stop_event`` is set."""
        self._log.info("started status update handler")
        self._enabled.set()
        try:
            while not stop_event.is_set():
                try:
                    update = self._updates.get(timeout=self._poll_interval)
                except queue.Empty:
                    continue
                self._log.info(
                    "received a status update namespace=%s name=%s",
                    update.namespaced_name.namespace,
                    update.namespaced_name.name,
                )
                self._apply(update)
        finally:
            self._log.info("stopped status update handler")

    def writer(self) -> UpdateWriter:
        """Return the writer used to send updates to this handler."""
        return UpdateWriter(self._enabled, self._updates)