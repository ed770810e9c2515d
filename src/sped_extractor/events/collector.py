"""In-process event collector.

The collector buffers every event of an extraction, forwards it to any
registered hooks and writes it to the structured log, so resolution
decisions can be inspected by tests, the CLI or an embedding application.
"""

from collections import deque
from collections.abc import Callable

import structlog

from sped_extractor.events.types import EventType, ExtractionEvent

logger = structlog.get_logger(__name__)


class EventCollector:
    """Buffer and fan out extraction events.

    Usage:
        collector = EventCollector()
        collector.add_event_hook(print)
        extractor = SpedExtractor(collector=collector)
        ...
        collector.events_of(EventType.VALUE_RESOLVED)
    """

    def __init__(self, buffer_size: int | None = None):
        self._buffer_size = buffer_size
        self._event_buffer: deque[ExtractionEvent] = deque(maxlen=buffer_size)
        self._event_hooks: list[Callable[[ExtractionEvent], None]] = []
        self._logger = logger.bind(component="event_collector")

    @property
    def recent_events(self) -> list[ExtractionEvent]:
        """Get buffered events in emission order."""
        return list(self._event_buffer)

    def events_of(self, event_type: EventType) -> list[ExtractionEvent]:
        return [e for e in self._event_buffer if e.event_type == event_type]

    def add_event_hook(self, hook: Callable[[ExtractionEvent], None]) -> None:
        """Add a hook to be called synchronously for every event."""
        self._event_hooks.append(hook)

    def remove_event_hook(self, hook: Callable[[ExtractionEvent], None]) -> None:
        """Remove an event hook."""
        if hook in self._event_hooks:
            self._event_hooks.remove(hook)

    def clear(self) -> None:
        self._event_buffer.clear()

    def publish(self, event: ExtractionEvent) -> None:
        """Record an event, run hooks and log it."""
        self._event_buffer.append(event)

        for hook in self._event_hooks:
            try:
                hook(event)
            except Exception as e:
                self._logger.error("event_hook_error", error=str(e))

        payload = event.to_dict()
        payload.pop("timestamp", None)
        payload.pop("id", None)
        self._logger.debug(event.event_type.value, **payload)
