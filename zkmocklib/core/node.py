"""Tree node records.

Nodes live in an arena owned by the NodeStore and refer to each other by
integer id only. ``parent_id`` is used to rebuild paths; ownership of an
ephemeral node is carried by ``owner_session_id``, never by the parent.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .._common.config import CreateMode


@dataclass(frozen=True)
class Stat:
    """Metadata snapshot of a node, as returned to callers.

    Field names follow the ZooKeeper ``Stat`` structure.
    """
    czxid: int
    mzxid: int
    pzxid: int
    ctime: int
    mtime: int
    version: int
    cversion: int
    aversion: int
    ephemeral_owner: int
    data_length: int
    num_children: int


@dataclass
class ZNode:
    """One entry in the node tree.

    ``children`` and ``sequence_counter`` are ``None`` for ephemeral nodes,
    which can never have children.
    """

    node_id: int
    name: str
    parent_id: Optional[int]
    mode: CreateMode = CreateMode.PERSISTENT
    data: Optional[bytes] = None
    acl: List[Any] = field(default_factory=list)
    owner_session_id: Optional[int] = None
    children: Optional[Dict[str, int]] = None
    sequence_counter: Optional[int] = None

    # Bookkeeping surfaced through Stat
    czxid: int = 0
    mzxid: int = 0
    pzxid: int = 0
    ctime: int = 0
    mtime: int = 0
    version: int = 0
    cversion: int = 0
    aversion: int = 0

    def __post_init__(self):
        if not self.mode.is_ephemeral:
            if self.children is None:
                self.children = {}
            if self.sequence_counter is None:
                self.sequence_counter = 0

    @property
    def is_ephemeral(self) -> bool:
        return self.mode.is_ephemeral

    @property
    def is_root(self) -> bool:
        return self.parent_id is None

    def is_leaf(self) -> bool:
        """True if the node currently has no children."""
        return not self.children

    def child_names(self) -> List[str]:
        """Names of direct children, sorted for stable output."""
        return sorted(self.children) if self.children else []

    def stat(self) -> Stat:
        """Build an immutable Stat snapshot of this node."""
        return Stat(
            czxid=self.czxid,
            mzxid=self.mzxid,
            pzxid=self.pzxid,
            ctime=self.ctime,
            mtime=self.mtime,
            version=self.version,
            cversion=self.cversion,
            aversion=self.aversion,
            ephemeral_owner=self.owner_session_id or 0,
            data_length=len(self.data) if self.data else 0,
            num_children=len(self.children) if self.children else 0,
        )

    def __repr__(self) -> str:
        return f"ZNode(id={self.node_id}, name={self.name!r}, mode={self.mode.name})"
