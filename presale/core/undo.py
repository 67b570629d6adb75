"""
Undo log.

Records how to reverse each change made to a mapping, set or list so an
all-or-nothing block can be rolled back without copying whole
collections. Rollback cost is proportional to the number of changes
made inside the block, not to the size of the collections.
"""

from collections.abc import Callable, MutableMapping, MutableSet
from functools import partial
from typing import Any


_MISSING = object()


def _restore_item(mapping: MutableMapping, key: Any, previous: Any) -> None:
    if previous is _MISSING:
        mapping.pop(key, None)
    else:
        mapping[key] = previous


class UndoLog:
    """Reverse-order log of collection changes."""

    def __init__(self) -> None:
        self._entries: list[Callable[[], Any]] = []

    def __len__(self) -> int:
        return len(self._entries)

    def record(self, undo: Callable[[], Any]) -> None:
        """Register a callable that reverses one change."""
        self._entries.append(undo)

    def set_item(self, mapping: MutableMapping, key: Any, value: Any) -> None:
        """Set `mapping[key]`, remembering the previous entry."""
        self._entries.append(partial(_restore_item, mapping, key, mapping.get(key, _MISSING)))
        mapping[key] = value

    def save_item(self, mapping: MutableMapping, key: Any, saved: Any) -> None:
        """Remember `saved` as the entry to put back under `key`."""
        self._entries.append(partial(_restore_item, mapping, key, saved))

    def forget_item(self, mapping: MutableMapping, key: Any) -> None:
        """Remember that `key` did not exist in `mapping`."""
        self._entries.append(partial(_restore_item, mapping, key, _MISSING))

    def add_member(self, members: MutableSet, item: Any) -> None:
        if item not in members:
            members.add(item)
            self._entries.append(partial(members.discard, item))

    def append_item(self, items: list, item: Any) -> None:
        items.append(item)
        self._entries.append(items.pop)

    def rollback(self) -> None:
        """Reverse every recorded change, newest first."""
        while self._entries:
            self._entries.pop()()
