"""Synchronous core of the mock: node records, traversal, watchers, store.

Everything here mutates and reads the tree atomically and immediately.
Deferred delivery of results lives in ``zkmocklib.aio``.
"""

from .node import ZNode, Stat
from .traversal import walk_arena
from .watchers import WatcherRegistry, WatchedEvent, WatchFamily
from .store import NodeStore, ROOT_ID, ANY_VERSION

__all__ = [
    # Nodes
    'ZNode',
    'Stat',
    # Traversal
    'walk_arena',
    # Watchers
    'WatcherRegistry',
    'WatchedEvent',
    'WatchFamily',
    # Store
    'NodeStore',
    'ROOT_ID',
    'ANY_VERSION',
]
