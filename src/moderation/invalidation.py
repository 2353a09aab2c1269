"""
View Invalidation

Cached views (submission lists, pending counts) register a refresh callback
under a tuple key. Invalidating a prefix refreshes every view whose key
starts with it, so ("submissions", "evidence") covers every evidence list
regardless of its filter.
"""

import inspect
import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

from moderation.models import SubmissionFilter, SubmissionKind

logger = logging.getLogger(__name__)

ViewKey = Tuple[Any, ...]

PENDING_COUNTS_KEY: ViewKey = ("pending-counts",)


def submissions_key(kind: SubmissionKind, filters: Optional[SubmissionFilter] = None) -> ViewKey:
    """Key of one filtered submission list."""
    filters = filters or SubmissionFilter()
    status = filters.status.value if filters.status else None
    return ("submissions", kind.value, status, filters.assigned_to)


def submissions_prefix(kind: SubmissionKind) -> ViewKey:
    """Prefix matching every list of one kind."""
    return ("submissions", kind.value)


class ViewInvalidator:
    """Registry of refreshable views keyed by tuple."""

    def __init__(self):
        self._views: Dict[ViewKey, List[Callable[[], Any]]] = {}
        self.history: List[ViewKey] = []

    def subscribe(self, key: ViewKey, refresh: Callable[[], Any]) -> Callable[[], None]:
        """
        Register a refresh callback for a view.

        Returns:
            Function that removes the registration
        """
        self._views.setdefault(key, []).append(refresh)

        def unsubscribe() -> None:
            callbacks = self._views.get(key, [])
            if refresh in callbacks:
                callbacks.remove(refresh)
            if not callbacks:
                self._views.pop(key, None)

        return unsubscribe

    def matching(self, prefix: ViewKey) -> List[ViewKey]:
        return [key for key in self._views if key[: len(prefix)] == prefix]

    async def invalidate(self, *prefixes: ViewKey) -> List[ViewKey]:
        """
        Refresh every view under the given prefixes.

        Returns:
            Keys of the views that were refreshed
        """
        refreshed: List[ViewKey] = []
        for prefix in prefixes:
            self.history.append(prefix)
            for key in self.matching(prefix):
                if key in refreshed:
                    continue
                for refresh in list(self._views.get(key, [])):
                    try:
                        result = refresh()
                        if inspect.isawaitable(result):
                            await result
                    except Exception as e:
                        # A stale view is refetched on next render
                        logger.warning(f"View refresh failed for {key}: {e}")
                refreshed.append(key)

        logger.debug(f"Invalidated {len(refreshed)} views", extra={"prefixes": list(prefixes)})
        return refreshed
