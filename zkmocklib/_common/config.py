"""Configuration and protocol constants for zkmocklib.

This module defines the construction-time options of the mock as well as
the constants that mirror the external ZooKeeper client library (creation
modes, event types, ACL placeholders) so dependents are unaffected when the
mock is swapped in.
"""

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import List, Optional


class CreateMode(IntEnum):
    """How a node is created.

    Values match the ZooKeeper wire protocol flags.
    """
    PERSISTENT = 0
    EPHEMERAL = 1
    PERSISTENT_SEQUENTIAL = 2
    EPHEMERAL_SEQUENTIAL = 3

    @property
    def is_ephemeral(self) -> bool:
        """True for modes whose nodes die with their session."""
        return self in (CreateMode.EPHEMERAL, CreateMode.EPHEMERAL_SEQUENTIAL)

    @property
    def is_sequential(self) -> bool:
        """True for modes that get a counter suffix appended by the parent."""
        return self in (CreateMode.PERSISTENT_SEQUENTIAL, CreateMode.EPHEMERAL_SEQUENTIAL)


class EventType(IntEnum):
    """Kinds of node events delivered to watchers."""
    NODE_CREATED = 1
    NODE_DELETED = 2
    NODE_DATA_CHANGED = 3
    NODE_CHILDREN_CHANGED = 4


class KeeperState(IntEnum):
    """Connection state reported alongside watcher events."""
    DISCONNECTED = 0
    SYNC_CONNECTED = 3


class TraversalOrder(Enum):
    """Order in which a tree walk yields nodes."""
    PRE_ORDER = "pre"       # Parent before children
    POST_ORDER = "post"     # Children before parent


class Permission(IntEnum):
    """ACL permission bits. Stored on nodes but never enforced."""
    READ = 1
    WRITE = 2
    CREATE = 4
    DELETE = 8
    ADMIN = 16
    ALL = 31


@dataclass(frozen=True)
class Id:
    """ACL identity: an auth scheme and an id within it."""
    scheme: str
    id: str


@dataclass(frozen=True)
class ACL:
    """Single ACL entry."""
    permission: int
    id: Id


OPEN_ACL_UNSAFE: List[ACL] = [ACL(Permission.ALL, Id("world", "anyone"))]
CREATOR_ALL_ACL: List[ACL] = [ACL(Permission.ALL, Id("auth", ""))]
READ_ACL_UNSAFE: List[ACL] = [ACL(Permission.READ, Id("world", "anyone"))]


@dataclass
class MockConfig:
    """Construction-time options of a ZooKeeperMock.

    These only control diagnostic output and injected latency. No setting
    here changes the outcome of an operation.
    """

    enable_trace_log: bool = False   # Log every operation at INFO
    min_delay_ms: float = 0          # Lower bound of the injected delay
    max_delay_ms: float = 0          # Upper bound; 0 means plain FIFO delivery
    seed: Optional[int] = None       # Seed for the delay RNG

    @property
    def has_delay(self) -> bool:
        """Whether completions are delivered after a random delay."""
        return self.max_delay_ms > 0

    @classmethod
    def immediate(cls, enable_trace_log: bool = False) -> 'MockConfig':
        """Create config delivering completions on the next loop turn.

        Args:
            enable_trace_log: Log every operation at INFO level

        Returns:
            MockConfig without injected latency
        """
        return cls(enable_trace_log=enable_trace_log)

    @classmethod
    def jittered(cls, min_delay_ms: float, max_delay_ms: float,
                 seed: Optional[int] = None) -> 'MockConfig':
        """Create config delivering completions after a random delay.

        Args:
            min_delay_ms: Smallest delay in milliseconds
            max_delay_ms: Largest delay in milliseconds
            seed: Optional RNG seed so the jitter is reproducible

        Returns:
            MockConfig with a delay window
        """
        return cls(min_delay_ms=min_delay_ms, max_delay_ms=max_delay_ms, seed=seed)

    def validate(self) -> List[str]:
        """Validate configuration for consistency.

        Returns:
            List of validation errors (empty if valid)
        """
        errors = []

        if self.min_delay_ms < 0:
            errors.append("min_delay_ms cannot be negative")
        if self.max_delay_ms < 0:
            errors.append("max_delay_ms cannot be negative")
        if self.max_delay_ms < self.min_delay_ms:
            errors.append("max_delay_ms cannot be less than min_delay_ms")

        return errors
