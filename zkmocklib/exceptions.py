"""Error taxonomy for zkmocklib.

There are two tiers of errors:

- Programmer errors (malformed paths or arguments) are raised synchronously
  from the call that received them. ``InvalidPathError`` is a ``ValueError``;
  malformed arguments raise plain ``TypeError``.
- Domain errors (``ZooKeeperError`` subclasses) describe tree state. They are
  never raised at the caller; they are delivered as the exception of the
  operation's future.
"""

from enum import IntEnum
from typing import Dict, Optional, Type


class ErrorCode(IntEnum):
    """Domain error codes, matching the ZooKeeper wire protocol."""
    OK = 0
    NO_NODE = -101
    BAD_VERSION = -103
    NO_CHILDREN_FOR_EPHEMERALS = -108
    NODE_EXISTS = -110
    NOT_EMPTY = -111
    SESSION_EXPIRED = -112


class InvalidPathError(ValueError):
    """Raised synchronously for a malformed node path."""

    def __init__(self, path, message: str):
        self.path = path
        super().__init__(f"{message} (path: {path!r})")


class ZooKeeperError(Exception):
    """Base class for domain errors delivered through a completion.

    Attributes:
        code: ErrorCode of this error
        path: Store path the operation failed on
    """

    code: ErrorCode = ErrorCode.OK

    def __init__(self, path: Optional[str] = None, message: Optional[str] = None):
        self.path = path
        text = message or self.code.name
        if path is not None:
            text = f"{text}[{path}]"
        super().__init__(text)

    @property
    def name(self) -> str:
        """Symbolic name of the error kind, e.g. ``'NO_NODE'``."""
        return self.code.name

    def get_code(self) -> int:
        """Numeric error code (client library compatible accessor)."""
        return int(self.code)

    @classmethod
    def from_code(cls, code: int, path: Optional[str] = None) -> 'ZooKeeperError':
        """Build the error subclass matching a numeric code.

        Args:
            code: One of the ErrorCode values
            path: Path the error refers to

        Returns:
            Instance of the matching subclass

        Raises:
            ValueError: If the code is not a known domain error
        """
        try:
            error_cls = _ERRORS_BY_CODE[ErrorCode(code)]
        except (KeyError, ValueError):
            raise ValueError(f"Unknown error code: {code}") from None
        return error_cls(path)


class NoNodeError(ZooKeeperError):
    """A path segment is absent where presence is required."""
    code = ErrorCode.NO_NODE


class NodeExistsError(ZooKeeperError):
    """A non-sequential create collided with an existing node."""
    code = ErrorCode.NODE_EXISTS


class NotEmptyError(ZooKeeperError):
    """Remove was called on a node that still has children."""
    code = ErrorCode.NOT_EMPTY


class NoChildrenForEphemeralsError(ZooKeeperError):
    """A create traversed an ephemeral ancestor."""
    code = ErrorCode.NO_CHILDREN_FOR_EPHEMERALS


class BadVersionError(ZooKeeperError):
    """An expected version did not match the node's current version."""
    code = ErrorCode.BAD_VERSION


class SessionExpiredError(ZooKeeperError):
    """An ephemeral create was issued through a session that has closed."""
    code = ErrorCode.SESSION_EXPIRED


_ERRORS_BY_CODE: Dict[ErrorCode, Type[ZooKeeperError]] = {
    error_cls.code: error_cls
    for error_cls in (
        NoNodeError,
        NodeExistsError,
        NotEmptyError,
        NoChildrenForEphemeralsError,
        BadVersionError,
        SessionExpiredError,
    )
}
