"""Pure path helpers shared by the store and the session layer."""

import re
from typing import List, Tuple

from ..exceptions import InvalidPathError

SEQUENCE_WIDTH = 10

_EMPTY_SEGMENT = re.compile(r"//")
_RELATIVE_SEGMENT = re.compile(r"/\.(\.)?(/|$)")


def validate_path(path: str) -> None:
    """Check that a node path is well formed.

    A valid path is non-empty, starts with ``/``, does not end with ``/``
    (except the root itself), has no empty segment and no ``.``/``..``
    segment.

    Args:
        path: Path to check

    Raises:
        InvalidPathError: If the path is malformed
    """
    if not path or not isinstance(path, str):
        raise InvalidPathError(path, "Node path must be a non-empty string.")
    if path[0] != "/":
        raise InvalidPathError(path, "Node path must start with / character.")
    # Root needs no further checks
    if len(path) == 1:
        return
    if path[-1] == "/":
        raise InvalidPathError(path, "Node path must not end with / character.")
    if _EMPTY_SEGMENT.search(path):
        raise InvalidPathError(path, "Node path must not contain empty node name.")
    if _RELATIVE_SEGMENT.search(path):
        raise InvalidPathError(path, "Node path must not contain relative path(s).")


def split_path(path: str) -> List[str]:
    """Split a validated path into its segments. The root has none."""
    if path == "/":
        return []
    return path[1:].split("/")


def join_path(parent: str, name: str) -> str:
    """Join a parent path and a child segment name."""
    if parent == "/":
        return "/" + name
    return parent + "/" + name


def parent_and_name(path: str) -> Tuple[str, str]:
    """Split a validated non-root path into (parent path, last segment)."""
    head, _, name = path.rpartition("/")
    return (head or "/"), name


def zero_pad(name: str, n: int, width: int = SEQUENCE_WIDTH) -> str:
    """Append ``n`` left-padded with zeros to ``width`` digits.

    >>> zero_pad('/foo', 42)
    '/foo0000000042'
    """
    return name + str(n).zfill(width)


def parse_chroot(connection_string: str) -> str:
    """Extract the chroot from a connection string.

    The chroot is everything from the first ``/`` onward, e.g.
    ``"zk1:2181,zk2:2181/app/locks"`` gives ``"/app/locks"``.

    Args:
        connection_string: ``host:port[,host:port...][/chroot]``

    Returns:
        The chroot path, or an empty string if there is none

    Raises:
        InvalidPathError: If the chroot part is not a valid path
    """
    if not isinstance(connection_string, str):
        raise TypeError("connection_string must be a string.")
    index = connection_string.find("/")
    if index == -1:
        return ""
    chroot = connection_string[index:]
    validate_path(chroot)
    # A bare "/" chroot is the same as none
    return "" if chroot == "/" else chroot


def apply_chroot(chroot: str, path: str) -> str:
    """Prefix a validated client path with the session chroot."""
    if not chroot:
        return path
    if path == "/":
        return chroot
    return chroot + path
