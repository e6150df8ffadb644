"""
All-or-nothing execution of strategy entry points.

A Checkpoint snapshots whatever state it owns and can restore it. atomic()
takes a snapshot before an entry point runs and restores it if any step
raises, then re-raises. On a live chain there is nothing to restore once a
transaction is mined, so NullCheckpoint is the default there.
"""

import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Iterator, List, Sequence

from keeper.logging_config import get_activity_logger

logger = logging.getLogger(__name__)


class Checkpoint(ABC):
    """State that can be snapshotted and rolled back."""

    @abstractmethod
    def snapshot(self) -> Any:
        """Capture current state and return an opaque token."""
        pass

    @abstractmethod
    def restore(self, token: Any) -> None:
        """Roll state back to the snapshot identified by token."""
        pass


class NullCheckpoint(Checkpoint):
    """For environments that provide whole-call atomicity themselves."""

    def snapshot(self) -> Any:
        return None

    def restore(self, token: Any) -> None:
        pass


class CompositeCheckpoint(Checkpoint):
    """Snapshots several checkpoints together; restores in reverse order."""

    def __init__(self, checkpoints: Sequence[Checkpoint]):
        self.checkpoints: List[Checkpoint] = list(checkpoints)

    def snapshot(self) -> Any:
        return [checkpoint.snapshot() for checkpoint in self.checkpoints]

    def restore(self, token: Any) -> None:
        for checkpoint, part in reversed(list(zip(self.checkpoints, token))):
            checkpoint.restore(part)


@contextmanager
def atomic(checkpoint: Checkpoint, operation: str) -> Iterator[None]:
    """
    Run a block as one unit.

    Args:
        checkpoint: State to snapshot and roll back
        operation: Entry point name for logging

    Raises:
        Whatever the block raised, after the rollback
    """
    token = checkpoint.snapshot()
    try:
        yield
    except Exception as e:
        logger.error(f"{operation} failed, rolling back: {e}")
        checkpoint.restore(token)
        get_activity_logger().log_error("checkpoint", type(e).__name__, str(e), operation=operation)
        raise
