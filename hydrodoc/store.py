"""In-process stores for checkpoints and rendered artifacts.

Both stores are keyed by session id and guard their map with a lock so
concurrently running sessions can share one instance. Nothing is persisted
beyond the lifetime of the process.
"""

import copy
import threading
from dataclasses import dataclass
from typing import Generic, TypeVar

from hydrodoc.errors import SessionNotFoundError
from hydrodoc.state import SessionState

T = TypeVar("T")


@dataclass(frozen=True)
class Checkpoint:
    """Snapshot of a session after its most recently completed stage."""

    state: SessionState
    stage: str  # Name of the stage that produced this snapshot.
    paused: bool = False  # True while waiting at the review interrupt.


class KeyValueStore(Generic[T]):
    """Thread-safe map from session id to a value."""

    def __init__(self) -> None:
        self._items: dict[str, T] = {}
        self._lock = threading.Lock()

    def get(self, session_id: str) -> T:
        """Return the stored value. Raises SessionNotFoundError if absent."""
        with self._lock:
            try:
                return self._items[session_id]
            except KeyError:
                raise SessionNotFoundError(session_id) from None

    def put(self, session_id: str, value: T) -> None:
        """Store value under session_id, replacing any previous entry."""
        with self._lock:
            self._items[session_id] = value

    def discard(self, session_id: str) -> None:
        """Remove the entry for session_id if there is one."""
        with self._lock:
            self._items.pop(session_id, None)

    def exists(self, session_id: str) -> bool:
        with self._lock:
            return session_id in self._items

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)


class CheckpointStore(KeyValueStore[Checkpoint]):
    """Latest checkpoint per session.

    States are deep-copied on the way in and out so in-place edits by a
    caller never reach a stored snapshot.
    """

    def get(self, session_id: str) -> Checkpoint:
        checkpoint = super().get(session_id)
        return Checkpoint(
            state=copy.deepcopy(checkpoint.state),
            stage=checkpoint.stage,
            paused=checkpoint.paused,
        )

    def put(self, session_id: str, value: Checkpoint) -> None:
        snapshot = Checkpoint(
            state=copy.deepcopy(value.state),
            stage=value.stage,
            paused=value.paused,
        )
        super().put(session_id, snapshot)


class ArtifactStore(KeyValueStore[bytes]):
    """Rendered document bytes per session.

    Written by Export; dropped when the session is started again or resubmitted.
    """
