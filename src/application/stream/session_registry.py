"""Session registry - active streams and partial responses, keyed by chat id."""

import logging
from typing import Generic, TypeVar

from src.application.stream.cancellation import CancellationSignal, CancelReason

logger = logging.getLogger(__name__)

T = TypeVar("T")


class StreamAlreadyActiveError(RuntimeError):
    """A stream is already in flight for this conversation."""

    def __init__(self, chat_id: str) -> None:
        super().__init__(f"A stream is already active for chat {chat_id}; cancel it first")
        self.chat_id = chat_id


class KeyedRegistry(Generic[T]):
    """Plain map with get/set/delete. Each key is written by one turn only."""

    def __init__(self) -> None:
        self._items: dict[str, T] = {}

    def get(self, key: str) -> T | None:
        return self._items.get(key)

    def set(self, key: str, value: T) -> None:
        self._items[key] = value

    def delete(self, key: str) -> None:
        self._items.pop(key, None)

    def __contains__(self, key: str) -> bool:
        return key in self._items

    def __len__(self) -> int:
        return len(self._items)


class SessionRegistry:
    """Process-wide stream bookkeeping, created once and injected."""

    def __init__(self) -> None:
        self.streams: KeyedRegistry[CancellationSignal] = KeyedRegistry()
        self.partials: KeyedRegistry[str] = KeyedRegistry()

    def is_active(self, chat_id: str) -> bool:
        signal = self.streams.get(chat_id)
        return signal is not None and not signal.cancelled_by_user

    def begin_stream(self, chat_id: str) -> CancellationSignal:
        """Register a new stream. Raises StreamAlreadyActiveError if one is running."""
        if self.is_active(chat_id):
            raise StreamAlreadyActiveError(chat_id)
        signal = CancellationSignal()
        self.streams.set(chat_id, signal)
        return signal

    def renew_signal(self, chat_id: str) -> CancellationSignal:
        """Fresh signal for a restarted stream of the same turn."""
        signal = CancellationSignal()
        self.streams.set(chat_id, signal)
        return signal

    def end_stream(self, chat_id: str, signal: CancellationSignal) -> bool:
        """Unregister, unless another turn has already replaced ``signal``.

        Returns whether ``signal`` was still the registered one.
        """
        if self.streams.get(chat_id) is not signal:
            return False
        self.streams.delete(chat_id)
        return True

    def cancel(self, chat_id: str) -> bool:
        """User cancel. Returns False when nothing is streaming."""
        signal = self.streams.get(chat_id)
        if signal is None:
            return False
        logger.info("Cancelling stream for chat %s", chat_id)
        signal.cancel(CancelReason.USER)
        return True
