from typing import Callable, Protocol

from tokenlens.models import UsageSnapshot

SnapshotCallback = Callable[[], None]


class SnapshotUnavailableError(Exception):
    """
    raised by a source when the collector can't be reached or
    returns something other than a snapshot.
    """


class SnapshotSource(Protocol):
    """
    SnapshotSource stands as the boundary with the data-acquisition
    collaborator. Sources never retry; a failed fetch raises and
    the caller decides what to show.

    Subscribers are called without arguments when the collaborator
    announces fresh data; they are expected to call get_snapshot().
    """

    @property
    def name(self) -> "str": ...

    async def get_snapshot(self) -> "UsageSnapshot": ...

    async def refresh_snapshot(self) -> "UsageSnapshot": ...

    def subscribe(self, callback: "SnapshotCallback") -> "Callable[[], None]": ...

    async def close(self) -> "None": ...


class Subscribers:
    """
    keeps the push callbacks of a source. A failing callback is
    logged by the caller's logger and doesn't stop the others.
    """

    def __init__(self) -> "None":
        self._callbacks: "list[SnapshotCallback]" = []

    def add(self, callback: "SnapshotCallback") -> "Callable[[], None]":
        self._callbacks.append(callback)

        def _unsubscribe() -> "None":
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return _unsubscribe

    def __len__(self) -> "int":
        return len(self._callbacks)

    def notify(self, on_error: "Callable[[BaseException], None]") -> "None":
        for callback in list(self._callbacks):
            try:
                callback()
            except Exception as e:
                on_error(e)
