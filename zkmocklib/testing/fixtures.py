"""Test fixtures for zkmocklib consumers.

These helpers give test suites controlled access to the mock's tree without
reaching into private attributes of the store.
"""

from typing import Dict, List, Optional

from .._common.config import TraversalOrder
from ..mock import ZooKeeperMock


class StoreTestHelper:
    """Public test fixture for verifying tree state.

    Example:
        mock = ZooKeeperMock()
        helper = StoreTestHelper(mock)

        await helper.settle()
        assert helper.paths() == ['/', '/app', '/app/lock0000000000']
        assert helper.ephemeral_owners() == {'/app/lock0000000000': session.session_id}
    """

    def __init__(self, mock: ZooKeeperMock):
        """Initialize with the mock under test.

        Args:
            mock: The ZooKeeperMock whose tree should be inspected
        """
        self._mock = mock

    def paths(self, start: str = "/") -> List[str]:
        """All paths under ``start`` (included), parents before children."""
        return [path for path, _ in self._mock.store.walk(TraversalOrder.PRE_ORDER, start)]

    def snapshot(self, start: str = "/") -> Dict[str, Optional[bytes]]:
        """Map of path to payload for every node under ``start``."""
        return {path: node.data for path, node in self._mock.store.walk(start=start)}

    def ephemeral_owners(self) -> Dict[str, int]:
        """Map of ephemeral node path to owning session id."""
        return {
            path: node.owner_session_id
            for path, node in self._mock.store.walk()
            if node.is_ephemeral
        }

    def sequence_counter(self, path: str) -> Optional[int]:
        """Next sequence number a parent will hand out, or None."""
        node = self._mock.store.get_node(path)
        return node.sequence_counter if node is not None else None

    def watcher_count(self, path: Optional[str] = None) -> int:
        """Pending one-shot watchers, for one path or overall."""
        return self._mock.store.watchers.count(path)

    def pending_completions(self) -> int:
        """Deliveries queued in the scheduler that have not run yet."""
        return self._mock.scheduler.pending

    async def settle(self) -> None:
        """Wait for every queued delivery, including ones queued meanwhile."""
        await self._mock.settle()
