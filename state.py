"""Observable engine state shared with presentation collaborators."""

from __future__ import annotations

import logging
import threading
from queue import Queue
from typing import Any, Callable, Generic, Optional, TypeVar

from models import EngineSnapshot
from recognizer import clean_hypothesis

logger = logging.getLogger(__name__)

T = TypeVar("T")
Subscriber = Callable[[T], None]


class NotificationDispatcher:
    """Runs subscriber callbacks in submission order on one background thread.

    Producers (capture and playback threads, or a caller holding the duplex
    transition lock) only enqueue, so a callback that calls back into the
    engine can never block the thread that produced the value.
    """

    def __init__(self, name: str = "voice-notify") -> None:
        self._name = name
        self._queue: Queue[Optional[tuple[Callable[..., Any], tuple]]] = Queue()
        self._lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self._closed = False

    @property
    def is_dispatch_thread(self) -> bool:
        return self._thread is not None and self._thread is threading.current_thread()

    def submit(self, callback: Callable[..., Any], *args: Any) -> bool:
        with self._lock:
            if self._closed:
                logger.debug("Dropping notification after close: %r", callback)
                return False
            if self._thread is None:
                self._thread = threading.Thread(target=self._run, name=self._name, daemon=True)
                self._thread.start()
            self._queue.put((callback, args))
        return True

    def flush(self, timeout: float = 2.0) -> bool:
        """Wait until everything submitted so far has been delivered."""
        if self.is_dispatch_thread:
            return False
        done = threading.Event()
        if not self.submit(done.set):
            return True
        return done.wait(timeout)

    def close(self, timeout: float = 2.0) -> None:
        """Deliver what is queued, then stop the thread. Idempotent."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            thread = self._thread
            if thread is not None:
                self._queue.put(None)
        if thread is None or thread is threading.current_thread():
            return
        thread.join(timeout)
        if thread.is_alive():
            logger.warning("Notification thread did not exit within %.1fs", timeout)

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            if item is None:
                return
            callback, args = item
            try:
                callback(*args)
            except Exception:
                logger.exception("Subscriber %r failed", callback)


class ObservableValue(Generic[T]):
    """A value that notifies subscribers when it changes.

    Without a dispatcher, subscribers run on the producer's thread.
    """

    def __init__(
        self,
        initial: T,
        lock: threading.RLock | None = None,
        dispatcher: NotificationDispatcher | None = None,
    ) -> None:
        self._value = initial
        self._lock = lock or threading.RLock()
        self._dispatcher = dispatcher
        self._subscribers: list[Subscriber] = []

    @property
    def value(self) -> T:
        with self._lock:
            return self._value

    def set(self, value: T) -> bool:
        with self._lock:
            if value == self._value:
                return False
            self._value = value
            subscribers = list(self._subscribers)
            if self._dispatcher is not None:
                # Enqueued under the lock so delivery order matches change order.
                for callback in subscribers:
                    self._dispatcher.submit(callback, value)
                return True
        for callback in subscribers:
            try:
                callback(value)
            except Exception:
                logger.exception("State subscriber %r failed", callback)
        return True

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        with self._lock:
            self._subscribers.append(callback)
        return lambda: self.unsubscribe(callback)

    def unsubscribe(self, callback: Subscriber) -> None:
        with self._lock:
            if callback in self._subscribers:
                self._subscribers.remove(callback)


class EngineState:
    """The three observable engine values plus the thread that notifies on them.

    Engine callbacks (state changes, errors) go through the same dispatcher
    so observers see them in order with the values.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self.dispatcher = NotificationDispatcher()
        self.is_listening: ObservableValue[bool] = ObservableValue(False, self._lock, self.dispatcher)
        self.recognized_text: ObservableValue[str] = ObservableValue("", self._lock, self.dispatcher)
        self.audio_level: ObservableValue[float] = ObservableValue(0.0, self._lock, self.dispatcher)

    def set_listening(self, listening: bool) -> bool:
        return self.is_listening.set(bool(listening))

    def publish_level(self, level: float) -> bool:
        return self.audio_level.set(max(0.0, min(1.0, float(level))))

    def publish_text(self, hypothesis: str | None) -> bool:
        """Emit the cleaned hypothesis; empty hypotheses keep the last text."""
        cleaned = clean_hypothesis(hypothesis)
        if not cleaned:
            return False
        return self.recognized_text.set(cleaned)

    def notify(self, callback: Optional[Callable[..., Any]], *args: Any) -> None:
        if callback is not None:
            self.dispatcher.submit(callback, *args)

    def flush(self, timeout: float = 2.0) -> bool:
        return self.dispatcher.flush(timeout)

    def close(self) -> None:
        self.dispatcher.close()

    def snapshot(self) -> EngineSnapshot:
        with self._lock:
            return EngineSnapshot(
                is_listening=self.is_listening.value,
                recognized_text=self.recognized_text.value,
                audio_level=self.audio_level.value,
            )
