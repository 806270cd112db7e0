"""ZooKeeperMock: the store factory dependents instantiate.

One mock owns one node tree and one deferred scheduler. There is no module
level state, so independent test fixtures each get their own isolated tree.
"""

import dataclasses
import itertools
import logging
from typing import Dict, List, Optional

from ._common.config import MockConfig
from .aio.scheduler import DeferredScheduler
from .aio.session import Session
from .core.store import NodeStore

logger = logging.getLogger(__name__)

DEFAULT_CONNECTION_STRING = "127.0.0.1:2181"


class ZooKeeperMock:
    """In-memory stand-in for a ZooKeeper ensemble.

    Example:
        mock = ZooKeeperMock(min_delay_ms=1, max_delay_ms=5, seed=42)
        session = mock.create_session('127.0.0.1:2181/app')
        await session.connect()
        await session.mkdirp('/jobs', b'')
    """

    def __init__(self, config: Optional[MockConfig] = None, **overrides):
        """Initialize a mock with an empty tree.

        Args:
            config: Mock configuration (defaults to MockConfig())
            **overrides: Individual MockConfig fields overriding ``config``

        Raises:
            ValueError: If the resulting configuration is invalid
        """
        config = config or MockConfig()
        if overrides:
            config = dataclasses.replace(config, **overrides)
        errors = config.validate()
        if errors:
            raise ValueError("Invalid mock configuration: " + "; ".join(errors))

        self.config = config
        self.scheduler = DeferredScheduler(config)
        self.store = NodeStore(config, dispatch=self.scheduler.call)
        self._sessions: Dict[int, Session] = {}
        self._session_ids = itertools.count(1)

    def create_session(self, connection_string: str = DEFAULT_CONNECTION_STRING) -> Session:
        """Create a disconnected session bound to this mock's tree.

        Args:
            connection_string: ``host:port[,host:port...][/chroot]``; only the
                               chroot part matters

        Returns:
            New Session with a unique id
        """
        session = Session(
            self.store,
            self.scheduler,
            next(self._session_ids),
            connection_string,
            on_close=self._forget_session,
        )
        self._sessions[session.session_id] = session
        logger.debug("created %r", session)
        return session

    # Client library spelling
    create_client = create_session
    createClient = create_session

    @property
    def sessions(self) -> List[Session]:
        """Sessions created by this mock that have not been closed."""
        return list(self._sessions.values())

    def reset_state(self) -> None:
        """Wipe the tree back to a lone root.

        Destructive. Sessions created before the reset keep working against
        the empty tree but are no longer tracked.

        Completions queued on an event loop that has been closed are
        discarded first, since they can never be delivered.

        Raises:
            RuntimeError: If completions are still pending
        """
        if self.scheduler.pending:
            raise RuntimeError(
                f"Cannot reset while {self.scheduler.pending} completion(s) are pending; "
                "await settle() first."
            )
        self.store.reset()
        self._sessions.clear()

    async def settle(self) -> None:
        """Wait until every queued completion has been delivered."""
        await self.scheduler.drain()

    def dump(self) -> str:
        """Indented text rendering of the whole tree."""
        return self.store.dump()

    def _forget_session(self, session: Session) -> None:
        self._sessions.pop(session.session_id, None)

    def __repr__(self) -> str:
        return f"ZooKeeperMock(nodes={self.store.node_count}, sessions={len(self._sessions)})"
