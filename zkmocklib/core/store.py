"""The node tree and its operations.

NodeStore is the synchronous, atomic core of the mock. It knows nothing
about sessions or scheduling: ephemeral ownership is an opaque session id
handed in by the caller, and fired watchers are passed to a dispatch
callable chosen by whoever owns the store (normally the deferred scheduler).

Domain failures are raised as ZooKeeperError subclasses; the session layer
turns them into failed completions.
"""

import functools
import logging
import threading
import time
from typing import Callable, Iterator, List, Optional, Tuple

from .._common.config import (
    MockConfig,
    CreateMode,
    EventType,
    TraversalOrder,
    OPEN_ACL_UNSAFE,
)
from .._common.paths import (
    validate_path,
    split_path,
    join_path,
    parent_and_name,
    zero_pad,
)
from ..exceptions import (
    InvalidPathError,
    ZooKeeperError,
    NoNodeError,
    NodeExistsError,
    NotEmptyError,
    NoChildrenForEphemeralsError,
    BadVersionError,
)
from .node import ZNode, Stat
from .traversal import walk_arena
from .watchers import WatcherRegistry, WatchedEvent, Watcher

logger = logging.getLogger(__name__)

ROOT_ID = 0
ANY_VERSION = -1

Dispatch = Callable[[Watcher, WatchedEvent], None]


def _traced(method):
    """Log the outcome of a store operation.

    Lines go to INFO when trace logging is enabled, DEBUG otherwise.
    """
    op_name = method.__name__

    @functools.wraps(method)
    def wrapper(self, path, *args, **kwargs):
        try:
            result = method(self, path, *args, **kwargs)
        except ZooKeeperError as error:
            self._trace("%s %s -> %s", op_name, path, error.name)
            raise
        self._trace("%s %s -> %s", op_name, path, result if isinstance(result, str) else "OK")
        return result

    return wrapper


def _check_data(data) -> Optional[bytes]:
    if data is None:
        return None
    if isinstance(data, (bytes, bytearray, memoryview)):
        return bytes(data)
    raise TypeError(f"data must be bytes or None, got {type(data).__name__}.")


def _check_acl(acl) -> list:
    if acl is None:
        return list(OPEN_ACL_UNSAFE)
    if not isinstance(acl, (list, tuple)):
        raise TypeError(f"acl must be a list of ACL entries, got {type(acl).__name__}.")
    if not acl:
        raise TypeError("acl must be a non-empty list.")
    return list(acl)


def _check_mode(mode) -> CreateMode:
    if isinstance(mode, bool) or not isinstance(mode, int):
        raise TypeError(f"mode must be a CreateMode, got {mode!r}.")
    try:
        return CreateMode(mode)
    except ValueError:
        raise TypeError(f"Unknown create mode: {mode!r}.") from None


class NodeStore:
    """In-memory hierarchical node tree.

    Nodes are kept in an arena indexed by node id. The root (id 0) always
    exists and can never be removed. Every public operation runs under one
    re-entrant lock, so no caller ever observes a partially mutated tree,
    even from another thread.

    Example:
        store = NodeStore()
        store.mkdirp('/app/config', b'{}')
        data, stat = store.get_data('/app/config')
    """

    def __init__(self, config: Optional[MockConfig] = None, dispatch: Optional[Dispatch] = None):
        """Initialize an empty store holding only the root.

        Args:
            config: Mock configuration (only trace logging is used here)
            dispatch: Called with (watcher, event) for every fired watcher.
                      When None, fired watchers are queued and can be
                      collected with ``take_fired()``.
        """
        self.config = config or MockConfig()
        self.watchers = WatcherRegistry()
        self._dispatch = dispatch
        self._lock = threading.RLock()
        self._fired: List[Tuple[Watcher, WatchedEvent]] = []
        self.reset()

    # State management

    def reset(self) -> None:
        """Wipe the tree back to a lone root and drop every watcher.

        Destructive. Only call between test cases, never while operations
        are still in flight.
        """
        with self._lock:
            root = ZNode(node_id=ROOT_ID, name="", parent_id=None, acl=list(OPEN_ACL_UNSAFE))
            self._nodes = {ROOT_ID: root}
            self._next_id = ROOT_ID + 1
            self._zxid = 0
            self.watchers.clear()
            self._fired.clear()
        self._trace("reset")

    @property
    def node_count(self) -> int:
        """Number of nodes in the tree, root included."""
        return len(self._nodes)

    @property
    def last_zxid(self) -> int:
        """Id of the last committed mutation."""
        return self._zxid

    def take_fired(self) -> List[Tuple[Watcher, WatchedEvent]]:
        """Collect fired watchers queued while no dispatch was set."""
        with self._lock:
            fired, self._fired = self._fired, []
        return fired

    # Read operations

    @_traced
    def get_data(self, path: str, watcher: Optional[Watcher] = None) -> Tuple[Optional[bytes], Stat]:
        """Read a node's payload.

        Args:
            path: Full store path
            watcher: Optional one-shot watcher for the node's next
                     data-changed or deleted event

        Returns:
            Tuple of (data, stat)

        Raises:
            NoNodeError: If the node does not exist (no watcher is left)
        """
        validate_path(path)
        with self._lock:
            node = self._require(path)
            if watcher is not None:
                self.watchers.add_data_watch(path, watcher)
            return node.data, node.stat()

    @_traced
    def get_children(self, path: str, watcher: Optional[Watcher] = None) -> Tuple[List[str], Stat]:
        """List the names of a node's direct children.

        Order is not part of the contract; names are sorted for stable
        output.

        Args:
            path: Full store path
            watcher: Optional one-shot watcher for the node's next
                     children-changed or deleted event

        Returns:
            Tuple of (child names, stat)

        Raises:
            NoNodeError: If the node does not exist
        """
        validate_path(path)
        with self._lock:
            node = self._require(path)
            if watcher is not None:
                self.watchers.add_child_watch(path, watcher)
            return node.child_names(), node.stat()

    @_traced
    def exists(self, path: str, watcher: Optional[Watcher] = None) -> Optional[Stat]:
        """Check whether a node exists.

        Absence is a normal result here, not an error. A watcher set on an
        existing node behaves like a get_data watcher; on an absent node it
        fires when the node is created.

        Returns:
            The node's stat, or None if absent
        """
        validate_path(path)
        with self._lock:
            node = self._lookup(path)
            if watcher is not None:
                if node is not None:
                    self.watchers.add_data_watch(path, watcher)
                else:
                    self.watchers.add_exist_watch(path, watcher)
            return node.stat() if node is not None else None

    # Mutations

    @_traced
    def create(self, path: str, data: Optional[bytes] = None, acl=None,
               mode: CreateMode = CreateMode.PERSISTENT, owner: Optional[int] = None) -> str:
        """Create a node.

        Args:
            path: Full store path; for sequential modes the last segment is
                  the base name the counter suffix is appended to
            data: Payload bytes or None
            acl: ACL entries, stored but never enforced (default open)
            mode: Creation mode
            owner: Session id owning the node; required for ephemeral modes

        Returns:
            The resolved path, including the sequence suffix if any

        Raises:
            NoNodeError: An ancestor is missing
            NoChildrenForEphemeralsError: An ancestor is ephemeral
            NodeExistsError: The name is taken (non-sequential modes)
        """
        validate_path(path)
        data = _check_data(data)
        acl = _check_acl(acl)
        mode = _check_mode(mode)
        if mode.is_ephemeral and owner is None:
            raise TypeError("Ephemeral nodes need an owning session id.")

        with self._lock:
            if path == "/":
                raise NodeExistsError(path)

            parent = self._resolve_parent(path)
            parent_path, name = parent_and_name(path)
            if mode.is_sequential:
                name = zero_pad(name, parent.sequence_counter)
                path = join_path(parent_path, name)
                # Consumed even on collision so a later call can get past it
                parent.sequence_counter += 1
            if name in parent.children:
                raise NodeExistsError(path)

            zxid = self._next_zxid()
            now = self._now_ms()
            node = ZNode(
                node_id=self._next_id,
                name=name,
                parent_id=parent.node_id,
                mode=mode,
                data=data,
                acl=acl,
                owner_session_id=owner if mode.is_ephemeral else None,
                czxid=zxid,
                mzxid=zxid,
                pzxid=zxid,
                ctime=now,
                mtime=now,
            )
            self._next_id += 1
            self._nodes[node.node_id] = node
            parent.children[name] = node.node_id
            parent.cversion += 1
            parent.pzxid = zxid

            self._fire(path, EventType.NODE_CREATED)
            self._fire(parent_path, EventType.NODE_CHILDREN_CHANGED)
            return path

    @_traced
    def set_data(self, path: str, data: Optional[bytes], version: int = ANY_VERSION) -> Stat:
        """Overwrite a node's payload.

        Args:
            path: Full store path
            data: New payload bytes or None
            version: Expected data version, or -1 to skip the check

        Returns:
            The node's stat after the write

        Raises:
            NoNodeError: If the node does not exist
            BadVersionError: If ``version`` does not match
        """
        validate_path(path)
        data = _check_data(data)
        with self._lock:
            node = self._require(path)
            self._check_version(node, version, path)
            node.data = data
            node.version += 1
            node.mzxid = self._next_zxid()
            node.mtime = self._now_ms()
            self._fire(path, EventType.NODE_DATA_CHANGED)
            return node.stat()

    @_traced
    def remove(self, path: str, version: int = ANY_VERSION) -> str:
        """Delete a leaf node.

        Returns:
            The removed path

        Raises:
            InvalidPathError: For the root, synchronously
            NoNodeError: If the node does not exist
            NotEmptyError: If the node has children; the tree is unchanged
            BadVersionError: If ``version`` does not match
        """
        validate_path(path)
        if path == "/":
            raise InvalidPathError(path, "The root node cannot be removed.")
        with self._lock:
            node = self._require(path)
            if not node.is_leaf():
                raise NotEmptyError(path)
            self._check_version(node, version, path)
            self._unlink(path, node)
            return path

    @_traced
    def remove_recursive(self, path: str) -> List[str]:
        """Delete a node together with its whole subtree.

        Nodes are removed children-first, each one raising the usual deleted
        and children-changed events.

        Returns:
            Removed paths, in removal order

        Raises:
            InvalidPathError: For the root, synchronously
            NoNodeError: If the node does not exist
        """
        validate_path(path)
        if path == "/":
            raise InvalidPathError(path, "The root node cannot be removed.")
        with self._lock:
            node = self._require(path)
            doomed = list(walk_arena(self._nodes, node.node_id, path, TraversalOrder.POST_ORDER))
            for node_path, doomed_node in doomed:
                self._unlink(node_path, doomed_node)
        return [node_path for node_path, _ in doomed]

    @_traced
    def mkdirp(self, path: str, data: Optional[bytes] = None, acl=None,
               mode: CreateMode = CreateMode.PERSISTENT, owner: Optional[int] = None) -> str:
        """Create a node and any missing ancestors.

        Ancestors are created PERSISTENT without data; ancestors that
        already exist are fine. The last segment gets the requested data
        and mode. A non-sequential last segment that already exists is left
        untouched and counts as success.

        Returns:
            The resolved path of the last segment

        Raises:
            NoChildrenForEphemeralsError: If an existing ancestor is
                ephemeral
        """
        validate_path(path)
        # Reject bad arguments before any ancestor gets created
        data = _check_data(data)
        acl = _check_acl(acl)
        mode = _check_mode(mode)
        if mode.is_ephemeral and owner is None:
            raise TypeError("Ephemeral nodes need an owning session id.")
        segments = split_path(path)
        if not segments:
            return path

        with self._lock:
            current = ""
            for name in segments[:-1]:
                current = f"{current}/{name}"
                try:
                    self.create(current, None, acl, CreateMode.PERSISTENT)
                except NodeExistsError:
                    pass
            try:
                return self.create(path, data, acl, mode, owner=owner)
            except NodeExistsError:
                return path

    def remove_owned(self, session_id: int) -> List[str]:
        """Delete every ephemeral node owned by a session, anywhere.

        Nodes are visited children-first. Each removal raises the usual
        deleted and children-changed events. Never fails.

        Returns:
            Paths that were removed
        """
        with self._lock:
            doomed = [
                (path, node)
                for path, node in walk_arena(self._nodes, ROOT_ID, "/", TraversalOrder.POST_ORDER)
                if node.is_ephemeral and node.owner_session_id == session_id
            ]
            for path, node in doomed:
                self._unlink(path, node)

        removed = [path for path, _ in doomed]
        if removed:
            self._trace("remove_owned %s -> %s", session_id, removed)
        return removed

    # Inspection

    def walk(self, order: TraversalOrder = TraversalOrder.PRE_ORDER, start: str = "/",
             max_depth: Optional[int] = None) -> Iterator[Tuple[str, ZNode]]:
        """Iterate over a subtree depth-first.

        The walk runs over a snapshot taken under the lock, so mutating the
        store while iterating is safe.

        Args:
            order: PRE_ORDER or POST_ORDER
            start: Path of the subtree root
            max_depth: Maximum depth below ``start`` (None = unlimited)

        Yields:
            Tuples of (path, node)

        Raises:
            NoNodeError: If ``start`` does not exist
        """
        validate_path(start)
        with self._lock:
            node = self._require(start)
            snapshot = list(walk_arena(self._nodes, node.node_id, start, order, max_depth))
        return iter(snapshot)

    def get_node(self, path: str) -> Optional[ZNode]:
        """Return the node record at ``path``, or None. For inspection only."""
        validate_path(path)
        with self._lock:
            return self._lookup(path)

    def path_of(self, node: ZNode) -> str:
        """Rebuild a node's full path by following parent ids."""
        with self._lock:
            names = []
            while node.parent_id is not None:
                names.append(node.name)
                node = self._nodes[node.parent_id]
        return "/" + "/".join(reversed(names))

    def dump(self) -> str:
        """Render the tree as indented text, one node per line."""
        lines = []
        for path, node in self.walk():
            depth = len(split_path(path))
            label = node.name or "/"
            suffix = f" [{node.mode.name}]" if node.mode is not CreateMode.PERSISTENT else ""
            lines.append(f"{'  ' * depth}{label} {node.data!r}{suffix}")
        return "\n".join(lines)

    # Internals

    def _lookup(self, path: str) -> Optional[ZNode]:
        node = self._nodes[ROOT_ID]
        for name in split_path(path):
            if not node.children:
                return None
            child_id = node.children.get(name)
            if child_id is None:
                return None
            node = self._nodes[child_id]
        return node

    def _require(self, path: str) -> ZNode:
        node = self._lookup(path)
        if node is None:
            raise NoNodeError(path)
        return node

    def _resolve_parent(self, path: str) -> ZNode:
        """Walk to the parent of ``path``, checking every ancestor."""
        node = self._nodes[ROOT_ID]
        for name in split_path(path)[:-1]:
            if node.is_ephemeral:
                raise NoChildrenForEphemeralsError(path)
            child_id = node.children.get(name)
            if child_id is None:
                raise NoNodeError(path)
            node = self._nodes[child_id]
        if node.is_ephemeral:
            raise NoChildrenForEphemeralsError(path)
        return node

    def _unlink(self, path: str, node: ZNode) -> None:
        parent = self._nodes[node.parent_id]
        zxid = self._next_zxid()
        del parent.children[node.name]
        del self._nodes[node.node_id]
        parent.cversion += 1
        parent.pzxid = zxid

        parent_path, _ = parent_and_name(path)
        self._fire(path, EventType.NODE_DELETED)
        self._fire(parent_path, EventType.NODE_CHILDREN_CHANGED)

    def _check_version(self, node: ZNode, version: int, path: str) -> None:
        if version != ANY_VERSION and version != node.version:
            raise BadVersionError(path)

    def _fire(self, path: str, event_type: EventType) -> None:
        for watcher, event in self.watchers.trigger(path, event_type):
            self._trace("fire %s", event)
            if self._dispatch is not None:
                self._dispatch(watcher, event)
            else:
                self._fired.append((watcher, event))

    def _next_zxid(self) -> int:
        self._zxid += 1
        return self._zxid

    @staticmethod
    def _now_ms() -> int:
        return int(time.time() * 1000)

    def _trace(self, msg: str, *args) -> None:
        level = logging.INFO if self.config.enable_trace_log else logging.DEBUG
        logger.log(level, msg, *args)
