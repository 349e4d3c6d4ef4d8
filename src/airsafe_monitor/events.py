import logging
import threading
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)

Handler = Callable[..., Any]


class EventEmitter:
    """Synchronous publish/subscribe.

    Handlers for an event run in registration order on the emitting thread.
    A handler that raises is logged and the remaining handlers still run.
    """

    def __init__(self) -> None:
        self._handlers: Dict[str, List[Handler]] = {}
        self._handlers_lock = threading.Lock()

    def on(self, event: str, handler: Handler) -> Callable[[], None]:
        """Register ``handler`` and return a function that unregisters it."""
        with self._handlers_lock:
            self._handlers.setdefault(event, []).append(handler)

        def dispose() -> None:
            self.off(event, handler)

        return dispose

    def off(self, event: str, handler: Handler) -> None:
        with self._handlers_lock:
            handlers = self._handlers.get(event, [])
            if handler in handlers:
                handlers.remove(handler)

    def remove_all_listeners(self) -> None:
        with self._handlers_lock:
            self._handlers.clear()

    def emit(self, event: str, *args: Any) -> None:
        with self._handlers_lock:
            handlers = list(self._handlers.get(event, []))

        for handler in handlers:
            try:
                handler(*args)
            except Exception:
                logger.exception("Handler for event %r failed", event)
