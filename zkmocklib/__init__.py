"""zkmocklib - In-memory ZooKeeper test double.

zkmocklib emulates a hierarchical coordination-service node store so code
that depends on a ZooKeeper client can be tested without a server or a
network. Results are never delivered synchronously: every operation returns
an ``asyncio.Future`` settled on a later loop turn, in issue order, which
makes races reproducible.

Typical use:
━━━━━━━━━━━━━━━━━━━━━━━━━━
    from zkmocklib import ZooKeeperMock, CreateMode

    mock = ZooKeeperMock()
    async with mock.create_session('127.0.0.1:2181/app') as session:
        await session.mkdirp('/jobs')
        path = await session.create('/jobs/job-', b'{}', mode=CreateMode.PERSISTENT_SEQUENTIAL)
━━━━━━━━━━━━━━━━━━━━━━━━━━
"""

__version__ = "0.1.0"

from ._common import (
    MockConfig,
    CreateMode,
    EventType,
    KeeperState,
    TraversalOrder,
    Permission,
    Id,
    ACL,
    OPEN_ACL_UNSAFE,
    CREATOR_ALL_ACL,
    READ_ACL_UNSAFE,
    validate_path,
    zero_pad,
)
from .exceptions import (
    ErrorCode,
    InvalidPathError,
    ZooKeeperError,
    NoNodeError,
    NodeExistsError,
    NotEmptyError,
    NoChildrenForEphemeralsError,
    BadVersionError,
    SessionExpiredError,
)
from .core import NodeStore, ZNode, Stat, WatchedEvent, WatcherRegistry
from .aio import DeferredScheduler, Session, SessionState
from .mock import ZooKeeperMock

__all__ = [
    "__version__",
    # Entry point
    "ZooKeeperMock",
    # Configuration and constants
    "MockConfig",
    "CreateMode",
    "EventType",
    "KeeperState",
    "TraversalOrder",
    "Permission",
    "Id",
    "ACL",
    "OPEN_ACL_UNSAFE",
    "CREATOR_ALL_ACL",
    "READ_ACL_UNSAFE",
    # Errors
    "ErrorCode",
    "InvalidPathError",
    "ZooKeeperError",
    "NoNodeError",
    "NodeExistsError",
    "NotEmptyError",
    "NoChildrenForEphemeralsError",
    "BadVersionError",
    "SessionExpiredError",
    # Core
    "NodeStore",
    "ZNode",
    "Stat",
    "WatchedEvent",
    "WatcherRegistry",
    # Async surface
    "DeferredScheduler",
    "Session",
    "SessionState",
    # Helpers
    "validate_path",
    "zero_pad",
]
