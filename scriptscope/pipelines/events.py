"""
ScriptScope Progress Channel

Typed publish/subscribe for run progress. A channel instance is handed to
the coordinator; subscribers may be plain or async callables.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from scriptscope.core.logging_config import get_logger

logger = get_logger("pipelines.events")


@dataclass
class ProgressEvent:
    """A progress update emitted by the run coordinator."""
    message: str
    progress_percent: float
    phase: str
    current_type: Optional[str] = None
    current_chunk: Optional[int] = None
    total_chunks: Optional[int] = None
    completed_types: int = 0
    total_types: int = 0
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "progress_percent": self.progress_percent,
            "phase": self.phase,
            "current_type": self.current_type,
            "current_chunk": self.current_chunk,
            "total_chunks": self.total_chunks,
            "completed_types": self.completed_types,
            "total_types": self.total_types,
            "timestamp": self.timestamp.isoformat(),
        }


ProgressHandler = Callable[[ProgressEvent], Union[None, Awaitable[None]]]


class ProgressChannel:
    """
    Progress pub/sub.

    Usage:
        channel = ProgressChannel()
        sub_id = channel.subscribe(lambda event: print(event.message))
        await channel.publish(ProgressEvent("Starting", 0.0, "planning"))
        channel.unsubscribe(sub_id)
    """

    def __init__(self):
        self._subscribers: Dict[str, ProgressHandler] = {}
        self._next_sub_id = 0
        self.history: List[ProgressEvent] = []
        self.keep_history = False

    def _generate_sub_id(self) -> str:
        self._next_sub_id += 1
        return f"sub_{self._next_sub_id:06d}"

    def subscribe(self, handler: ProgressHandler) -> str:
        sub_id = self._generate_sub_id()
        self._subscribers[sub_id] = handler
        logger.debug(f"Subscription created: {sub_id}")
        return sub_id

    def unsubscribe(self, sub_id: str) -> bool:
        removed = self._subscribers.pop(sub_id, None) is not None
        if removed:
            logger.debug(f"Subscription removed: {sub_id}")
        return removed

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    async def publish(self, event: ProgressEvent) -> None:
        """Deliver an event to every subscriber; failing subscribers are logged."""
        if self.keep_history:
            self.history.append(event)
        for sub_id, handler in list(self._subscribers.items()):
            try:
                result = handler(event)
                if asyncio.iscoroutine(result):
                    await result
            except Exception as e:
                logger.warning(f"Progress subscriber {sub_id} failed: {e}")
