"""One-shot watcher registrations.

Watchers are keyed by store path and by family. Keying by path rather than
by node lets an ``exists`` watch wait for a node that does not exist yet.
Every registration fires at most once: ``trigger`` removes what it returns.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Set, Tuple

from .._common.config import EventType, KeeperState


class WatchFamily(Enum):
    """Which read registered the watcher."""
    DATA = "data"       # get_data
    EXIST = "exist"     # exists
    CHILD = "child"     # get_children


# Which families each event type fires
_FIRED_BY: Dict[EventType, Tuple[WatchFamily, ...]] = {
    EventType.NODE_CREATED: (WatchFamily.DATA, WatchFamily.EXIST),
    EventType.NODE_DATA_CHANGED: (WatchFamily.DATA, WatchFamily.EXIST),
    EventType.NODE_DELETED: (WatchFamily.DATA, WatchFamily.EXIST, WatchFamily.CHILD),
    EventType.NODE_CHILDREN_CHANGED: (WatchFamily.CHILD,),
}


@dataclass(frozen=True)
class WatchedEvent:
    """Event handed to a watcher callback."""
    type: EventType
    state: KeeperState
    path: str

    def get_type(self) -> int:
        return int(self.type)

    def get_path(self) -> str:
        return self.path

    def __str__(self) -> str:
        return f"{self.type.name}[{self.state.name}]@{self.path}"


Watcher = Callable[[WatchedEvent], object]


class WatcherRegistry:
    """Pending one-shot subscriptions of one store."""

    def __init__(self):
        # path -> family -> watchers (insertion ordered, no duplicates)
        self._watches: Dict[str, Dict[WatchFamily, Dict[Watcher, None]]] = {}

    def add(self, path: str, family: WatchFamily, watcher: Watcher) -> None:
        """Register a watcher for the next matching event on ``path``.

        Registering the same callable twice for the same path and family
        still fires it once.
        """
        by_family = self._watches.setdefault(path, {})
        by_family.setdefault(family, {})[watcher] = None

    def add_data_watch(self, path: str, watcher: Watcher) -> None:
        self.add(path, WatchFamily.DATA, watcher)

    def add_exist_watch(self, path: str, watcher: Watcher) -> None:
        self.add(path, WatchFamily.EXIST, watcher)

    def add_child_watch(self, path: str, watcher: Watcher) -> None:
        self.add(path, WatchFamily.CHILD, watcher)

    def trigger(self, path: str, event_type: EventType) -> List[Tuple[Watcher, WatchedEvent]]:
        """Deregister and return every watcher fired by an event.

        Args:
            path: Store path the event happened on
            event_type: Kind of event

        Returns:
            List of (watcher, event) pairs to deliver, in registration order
            within each family
        """
        by_family = self._watches.get(path)
        if not by_family:
            return []

        event = WatchedEvent(event_type, KeeperState.SYNC_CONNECTED, path)
        fired: List[Tuple[Watcher, WatchedEvent]] = []
        seen: Set[Watcher] = set()
        for family in _FIRED_BY[event_type]:
            watchers = by_family.pop(family, None)
            if not watchers:
                continue
            for watcher in watchers:
                # A callable used for several families of one path fires once
                if watcher in seen:
                    continue
                seen.add(watcher)
                fired.append((watcher, event))

        if not by_family:
            del self._watches[path]
        return fired

    def count(self, path: str = None) -> int:
        """Number of pending registrations, for one path or overall."""
        if path is not None:
            return sum(len(w) for w in self._watches.get(path, {}).values())
        return sum(
            len(watchers)
            for by_family in self._watches.values()
            for watchers in by_family.values()
        )

    def clear(self) -> None:
        """Drop every pending registration."""
        self._watches.clear()
