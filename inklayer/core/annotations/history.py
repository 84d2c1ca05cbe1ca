"""
Undo/Redo functionality for annotations and text elements.
"""
from dataclasses import dataclass
from typing import List, Optional, Tuple

from .models import Annotation, TextElement


@dataclass(frozen=True)
class HistorySnapshot:
    """Immutable copy of the element collections at a commit point."""

    annotations: Tuple[Annotation, ...] = ()
    text_elements: Tuple[TextElement, ...] = ()
    # Ids of both collections in z-order, page by page
    order: Tuple[str, ...] = ()


class HistoryManager:
    """
    Linear undo/redo history over snapshots.

    The history always holds at least one snapshot (the initial state), and
    ``index`` points at the snapshot matching the current store contents.
    """

    def __init__(self, initial: Optional[HistorySnapshot] = None, max_size: int = 100):
        """
        Initialize the history.

        Args:
            initial: State before any commit, empty if omitted
            max_size: Maximum number of states to keep in history
        """
        self.max_size = max(2, max_size)
        self.snapshots: List[HistorySnapshot] = [initial or HistorySnapshot()]
        self.index = 0

    @property
    def current(self) -> HistorySnapshot:
        return self.snapshots[self.index]

    def commit(self, snapshot: HistorySnapshot) -> None:
        """
        Record a new state.

        Args:
            snapshot: State after the committed mutation
        """
        # Drop the redo branch
        del self.snapshots[self.index + 1:]
        self.snapshots.append(snapshot)

        # Limit history size
        if len(self.snapshots) > self.max_size:
            del self.snapshots[: len(self.snapshots) - self.max_size]

        self.index = len(self.snapshots) - 1

    def can_undo(self) -> bool:
        """Check if undo is available."""
        return self.index > 0

    def can_redo(self) -> bool:
        """Check if redo is available."""
        return self.index < len(self.snapshots) - 1

    def undo(self) -> Optional[HistorySnapshot]:
        """
        Step back one state.

        Returns:
            The snapshot now current, or None if undo is not available
        """
        if not self.can_undo():
            return None
        self.index -= 1
        return self.snapshots[self.index]

    def redo(self) -> Optional[HistorySnapshot]:
        """
        Step forward one state.

        Returns:
            The snapshot now current, or None if redo is not available
        """
        if not self.can_redo():
            return None
        self.index += 1
        return self.snapshots[self.index]

    def clear(self, initial: Optional[HistorySnapshot] = None) -> None:
        """Forget all history and start again from ``initial``."""
        self.snapshots = [initial or HistorySnapshot()]
        self.index = 0
