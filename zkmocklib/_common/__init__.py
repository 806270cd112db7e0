"""Common components shared between the synchronous core and the aio surface.

This internal package contains pure code with no scheduling or I/O:
configuration, protocol constants and path helpers. It should NOT be
imported directly by users.

Important: This package must NEVER import from core or aio to avoid
circular dependencies.
"""

from .config import (
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
)
from .paths import (
    SEQUENCE_WIDTH,
    validate_path,
    split_path,
    join_path,
    parent_and_name,
    zero_pad,
    parse_chroot,
    apply_chroot,
)

__all__ = [
    'MockConfig',
    'CreateMode',
    'EventType',
    'KeeperState',
    'TraversalOrder',
    'Permission',
    'Id',
    'ACL',
    'OPEN_ACL_UNSAFE',
    'CREATOR_ALL_ACL',
    'READ_ACL_UNSAFE',
    'SEQUENCE_WIDTH',
    'validate_path',
    'split_path',
    'join_path',
    'parent_and_name',
    'zero_pad',
    'parse_chroot',
    'apply_chroot',
]
