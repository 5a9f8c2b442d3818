"""
Typed publish/subscribe channel for analyzer lifecycle events.
"""

import inspect
import logging
from collections import defaultdict
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Union

logger = logging.getLogger(__name__)


class AnalyzerEvent(str, Enum):
    INITIALIZED = "analyzer:initialized"
    ANALYSIS_COMPLETED = "analysis:completed"
    ANALYSIS_FAILED = "analysis:failed"
    OPTIMIZATION_COMPLETED = "optimization:completed"
    OPTIMIZATION_FAILED = "optimization:failed"
    SHUTDOWN = "analyzer:shutdown"


EventHandler = Callable[[Any], Union[None, Awaitable[None]]]


class EventBus:
    """Delivers analyzer events to registered handlers.

    Handlers may be plain functions or coroutines. They are called in
    registration order, and a failing handler is logged without affecting
    the publisher or the remaining handlers.
    """

    def __init__(self):
        self._handlers: Dict[AnalyzerEvent, List[EventHandler]] = defaultdict(list)

    def subscribe(self, event: Union[AnalyzerEvent, str], handler: EventHandler) -> Callable[[], None]:
        """Register a handler and return a function that removes it again."""
        event = AnalyzerEvent(event)
        self._handlers[event].append(handler)

        def unsubscribe():
            handlers = self._handlers.get(event, [])
            if handler in handlers:
                handlers.remove(handler)

        return unsubscribe

    def handler_count(self, event: Union[AnalyzerEvent, str]) -> int:
        return len(self._handlers.get(AnalyzerEvent(event), []))

    def clear(self):
        self._handlers.clear()

    async def publish(self, event: AnalyzerEvent, payload: Any = None) -> None:
        for handler in list(self._handlers.get(event, [])):
            try:
                result = handler(payload)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"Event handler for {event.value} failed: {e}")
