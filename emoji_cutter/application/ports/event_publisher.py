"""Progress events for detection and extraction runs."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Protocol, runtime_checkable

# Stages emitted by the split and extraction services
STAGE_AI_SEGMENT = "ai_segment"
STAGE_FALLBACK_DETECT = "fallback_detect"
STAGE_DETECT_COMPLETE = "detect_complete"
STAGE_NO_REGIONS = "no_regions"
STAGE_EXTRACT_START = "extract_start"
STAGE_EXTRACT_FAILED = "extract_failed"
STAGE_EXTRACT_COMPLETE = "extract_complete"


@dataclass(frozen=True, slots=True)
class ProcessingEvent:
    """Progress notice emitted while splitting or extracting."""
    stage: str
    message: str
    progress: float | None = None  # 0.0 to 1.0
    region_count: int | None = None
    region_id: str | None = None

    @property
    def is_final(self) -> bool:
        return self.progress is not None and self.progress >= 1.0


EventCallback = Callable[[ProcessingEvent], None]


@runtime_checkable
class EventPublisher(Protocol):
    """Where services report progress; a UI or CLI listens on the other side."""

    def publish(self, event: ProcessingEvent) -> None:
        ...

    def subscribe(self, callback: EventCallback) -> None:
        ...


class SimpleEventPublisher:
    """Synchronous publisher; subscribers run on the publishing thread."""

    def __init__(self):
        self._listeners: list[EventCallback] = []

    def publish(self, event: ProcessingEvent) -> None:
        for listener in list(self._listeners):
            listener(event)

    def subscribe(self, callback: EventCallback) -> None:
        self._listeners.append(callback)

    def unsubscribe(self, callback: EventCallback) -> bool:
        """Stop delivering to ``callback``; False if it was never subscribed."""
        try:
            self._listeners.remove(callback)
        except ValueError:
            return False
        return True
