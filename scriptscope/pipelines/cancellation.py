"""Cooperative cancellation shared by the run coordinator and the chunk invoker."""

from scriptscope.core.logging_config import get_logger

logger = get_logger("pipelines.cancellation")


class CancellationToken:
    """A flag checked before every type and every chunk request."""

    def __init__(self):
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        if not self._cancelled:
            logger.info("Cancellation requested")
        self._cancelled = True

    def reset(self) -> None:
        self._cancelled = False
