"""Client sessions.

A Session is the handle dependents talk to in place of a real ZooKeeper
client. Each call validates its arguments synchronously, prefixes the path
with the session chroot, runs the store operation immediately and returns an
``asyncio.Future`` that the scheduler settles on a later loop turn.

Paths handed back to the caller still carry the chroot prefix.
"""

import logging
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from .._common.config import CreateMode
from .._common.paths import validate_path, parse_chroot, apply_chroot
from ..core.store import NodeStore, ANY_VERSION
from ..exceptions import ZooKeeperError, SessionExpiredError
from .scheduler import DeferredScheduler

logger = logging.getLogger(__name__)

CONNECTION_EVENTS = ("connected", "disconnected", "state")


class SessionState(Enum):
    """Connection state of a session."""
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"


def _check_watcher(watcher) -> None:
    if watcher is not None and not callable(watcher):
        raise TypeError("watcher must be callable.")


def _is_ephemeral(mode) -> bool:
    return not isinstance(mode, bool) and mode in (CreateMode.EPHEMERAL, CreateMode.EPHEMERAL_SEQUENTIAL)


class Session:
    """Connection handle bound to a chroot and an opaque session id.

    State machine: DISCONNECTED -> connect() -> CONNECTED -> close() ->
    DISCONNECTED. Both transitions are idempotent.

    Ephemeral nodes created through a session are owned by it and removed,
    wherever they are in the tree, when the session closes.
    A closed session cannot create new ephemerals; those creates fail
    with SessionExpiredError.

    Example:
        async with mock.create_session('zk:2181/app') as session:
            path = await session.create('/lock-', b'', mode=CreateMode.EPHEMERAL_SEQUENTIAL)
    """

    def __init__(
        self,
        store: NodeStore,
        scheduler: DeferredScheduler,
        session_id: int,
        connection_string: str = "",
        on_close: Optional[Callable[['Session'], None]] = None,
    ):
        """Initialize a disconnected session.

        Args:
            store: Node tree shared by all sessions of one mock
            scheduler: Deferred completion queue of the same mock
            session_id: Unique id used as owner of ephemeral nodes
            connection_string: ``host:port[,...][/chroot]``
            on_close: Called once the session has closed
        """
        self.connection_string = connection_string
        self.chroot = parse_chroot(connection_string)
        self.session_id = session_id
        self.state = SessionState.DISCONNECTED
        self._store = store
        self._scheduler = scheduler
        self._on_close = on_close
        # Set by close(); a closed session can no longer own ephemerals
        self._closed = False
        # event -> [(listener, once)]
        self._listeners: Dict[str, List[Tuple[Callable[..., Any], bool]]] = {}

    @property
    def connected(self) -> bool:
        return self.state is SessionState.CONNECTED

    # Connection lifecycle

    def connect(self):
        """Connect the session.

        Listeners of ``"connected"`` are called on a later turn. Connecting
        an already connected session only returns a settled-later future.

        Returns:
            Future resolved with this session after the listeners ran
        """
        self._scheduler.check_loop()
        if self.state is not SessionState.CONNECTED:
            self.state = SessionState.CONNECTED
            logger.debug("session %#x connected (chroot=%r)", self.session_id, self.chroot)
            self._emit("connected")
            self._emit("state", self.state)
        return self._scheduler.resolve(self)

    def close(self):
        """Close the session, removing every ephemeral node it owns.

        Never fails. Deleted and children-changed watchers fire for each
        removed node. Closing a closed session removes nothing new.

        Returns:
            Future resolved with the list of removed paths
        """
        self._scheduler.check_loop()
        self._closed = True
        removed = self._store.remove_owned(self.session_id)
        if self.state is not SessionState.DISCONNECTED:
            self.state = SessionState.DISCONNECTED
            logger.debug("session %#x closed, removed %d ephemeral node(s)",
                         self.session_id, len(removed))
            self._emit("disconnected")
            self._emit("state", self.state)
        if self._on_close is not None:
            self._on_close(self)
        return self._scheduler.resolve(removed)

    def on(self, event: str, listener: Callable[..., Any]) -> None:
        """Subscribe to a connection event until removed."""
        self._add_listener(event, listener, once=False)

    def once(self, event: str, listener: Callable[..., Any]) -> None:
        """Subscribe to the next occurrence of a connection event."""
        self._add_listener(event, listener, once=True)

    def remove_listener(self, event: str, listener: Callable[..., Any]) -> None:
        """Unsubscribe every registration of ``listener`` for ``event``."""
        listeners = self._listeners.get(event, [])
        self._listeners[event] = [(fn, once) for fn, once in listeners if fn is not listener]

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, []))

    # Node operations

    def create(self, path: str, data: Optional[bytes] = None, acl=None,
               mode: CreateMode = CreateMode.PERSISTENT):
        """Create a node.

        Returns:
            Future resolved with the created path (chroot included,
            sequence suffix appended for sequential modes)
        """
        if self._closed and _is_ephemeral(mode):
            return self._reject_expired(path)
        return self._submit(self._store.create, path, data, acl, mode, owner=self.session_id)

    def set_data(self, path: str, data: Optional[bytes], version: int = ANY_VERSION):
        """Overwrite a node's payload.

        Returns:
            Future resolved with the node's Stat
        """
        return self._submit(self._store.set_data, path, data, version)

    def get_data(self, path: str, watcher: Optional[Callable] = None):
        """Read a node's payload, optionally leaving a one-shot watcher.

        Returns:
            Future resolved with (data, Stat)
        """
        _check_watcher(watcher)
        return self._submit(self._store.get_data, path, watcher)

    def get_children(self, path: str, watcher: Optional[Callable] = None):
        """List a node's children, optionally leaving a one-shot watcher.

        Returns:
            Future resolved with (names, Stat)
        """
        _check_watcher(watcher)
        return self._submit(self._store.get_children, path, watcher)

    def exists(self, path: str, watcher: Optional[Callable] = None):
        """Check for a node.

        Returns:
            Future resolved with the Stat, or None if the node is absent
        """
        _check_watcher(watcher)
        return self._submit(self._store.exists, path, watcher)

    def remove(self, path: str, version: int = ANY_VERSION):
        """Delete a leaf node.

        Returns:
            Future resolved with the removed path
        """
        return self._submit(self._store.remove, path, version)

    def remove_recursive(self, path: str):
        """Delete a node and everything below it.

        Returns:
            Future resolved with the removed paths, deepest first
        """
        return self._submit(self._store.remove_recursive, path)

    def mkdirp(self, path: str, *args, data: Optional[bytes] = None, acl=None,
               mode: Optional[CreateMode] = None):
        """Create a node and any missing ancestors.

        The keyword form is preferred. For compatibility with the legacy
        call style, up to three extra positional arguments are accepted and
        told apart by shape: a list or tuple is the ACL, an int is the mode,
        bytes (or None) is the data.

        Returns:
            Future resolved with the resolved path of the last segment

        Raises:
            TypeError: For a positional argument of any other shape
        """
        if len(args) > 3:
            raise TypeError(f"mkdirp takes at most 3 optional positional arguments ({len(args)} given).")
        for arg in args:
            if arg is None:
                continue
            if isinstance(arg, (list, tuple)):
                acl = arg
            elif isinstance(arg, int) and not isinstance(arg, bool):
                mode = arg
            elif isinstance(arg, (bytes, bytearray, memoryview)):
                data = arg
            else:
                raise TypeError(f"Cannot tell what mkdirp argument {arg!r} is for.")
        if mode is None:
            mode = CreateMode.PERSISTENT
        if self._closed and _is_ephemeral(mode):
            return self._reject_expired(path)
        return self._submit(self._store.mkdirp, path, data, acl, mode, owner=self.session_id)

    # Client library spelling
    setData = set_data
    getData = get_data
    getChildren = get_children
    removeRecur = remove_recursive

    def get_session_id(self) -> int:
        return self.session_id

    getSessionId = get_session_id

    # Context manager

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    # Internals

    def _submit(self, operation: Callable, path: str, *args, **kwargs):
        self._scheduler.check_loop()
        validate_path(path)
        full_path = apply_chroot(self.chroot, path)
        try:
            result = operation(full_path, *args, **kwargs)
        except ZooKeeperError as error:
            return self._scheduler.reject(error)
        return self._scheduler.resolve(result)

    def _reject_expired(self, path: str):
        self._scheduler.check_loop()
        validate_path(path)
        return self._scheduler.reject(SessionExpiredError(apply_chroot(self.chroot, path)))

    def _add_listener(self, event: str, listener: Callable[..., Any], once: bool) -> None:
        if event not in CONNECTION_EVENTS:
            raise ValueError(f"Unknown connection event {event!r}; expected one of {CONNECTION_EVENTS}.")
        if not callable(listener):
            raise TypeError("listener must be callable.")
        self._listeners.setdefault(event, []).append((listener, once))

    def _emit(self, event: str, *args: Any) -> None:
        listeners = self._listeners.get(event, [])
        # once-listeners are dropped now, before delivery
        self._listeners[event] = [(fn, once) for fn, once in listeners if not once]
        for listener, _ in listeners:
            self._scheduler.call(listener, *args)

    def __repr__(self) -> str:
        return f"Session(id={self.session_id:#x}, chroot={self.chroot!r}, state={self.state.name})"
