"""
Selection Set

View-scoped set of submission ids chosen by the operator for a batch action.
Members hidden by a filter change stay selected; "select all" only ever
looks at the ids visible when it is invoked.
"""

from typing import Dict, Iterable, Iterator, Tuple


class SelectionSet:
    """Insertion-ordered set of selected submission ids."""

    def __init__(self):
        # dict keys keep selection order with O(1) membership
        self._ids: Dict[str, None] = {}

    def toggle(self, submission_id: str) -> bool:
        """
        Flip membership of one id.

        Returns:
            True if the id is selected after the call
        """
        if submission_id in self._ids:
            del self._ids[submission_id]
            return False
        self._ids[submission_id] = None
        return True

    def select_all_visible(self, visible_ids: Iterable[str]) -> None:
        """
        Select exactly the visible ids, or clear if they already are the selection.

        Hidden members are dropped when the visible set is selected.
        """
        visible: Dict[str, None] = dict.fromkeys(visible_ids)
        if visible and set(visible) == set(self._ids):
            self._ids.clear()
        else:
            self._ids = visible

    def clear(self) -> None:
        self._ids.clear()

    def snapshot(self) -> Tuple[str, ...]:
        """Immutable copy of the current selection."""
        return tuple(self._ids)

    def __contains__(self, submission_id: object) -> bool:
        return submission_id in self._ids

    def __len__(self) -> int:
        return len(self._ids)

    def __iter__(self) -> Iterator[str]:
        return iter(tuple(self._ids))

    def __bool__(self) -> bool:
        return bool(self._ids)

    def __repr__(self) -> str:
        return f"SelectionSet({list(self._ids)!r})"
