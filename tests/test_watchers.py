"""Tests for one-shot watchers."""

import asyncio
import pytest

from zkmocklib import (
    ZooKeeperMock,
    CreateMode,
    EventType,
    KeeperState,
    WatcherRegistry,
    NoNodeError,
)
from zkmocklib.core import WatchFamily, WatchedEvent


class TestRegistry:

    def test_trigger_is_one_shot(self):
        registry = WatcherRegistry()
        calls = []
        registry.add_data_watch("/a", calls.append)
        fired = registry.trigger("/a", EventType.NODE_DATA_CHANGED)
        assert len(fired) == 1
        assert registry.trigger("/a", EventType.NODE_DATA_CHANGED) == []
        assert registry.count() == 0

    def test_families(self):
        registry = WatcherRegistry()

        def data(event):
            pass

        def child(event):
            pass

        def exist(event):
            pass

        registry.add_data_watch("/a", data)
        registry.add_child_watch("/a", child)
        registry.add_exist_watch("/b", exist)

        assert [w for w, _ in registry.trigger("/a", EventType.NODE_CHILDREN_CHANGED)] == [child]
        assert [w for w, _ in registry.trigger("/b", EventType.NODE_CREATED)] == [exist]
        assert [w for w, _ in registry.trigger("/a", EventType.NODE_DELETED)] == [data]

    def test_deleted_fires_shared_watcher_once(self):
        registry = WatcherRegistry()

        def watcher(event):
            pass

        registry.add_data_watch("/a", watcher)
        registry.add_child_watch("/a", watcher)
        fired = registry.trigger("/a", EventType.NODE_DELETED)
        assert len(fired) == 1
        assert registry.count("/a") == 0

    def test_duplicate_registration_fires_once(self):
        registry = WatcherRegistry()

        def watcher(event):
            pass

        registry.add("/a", WatchFamily.CHILD, watcher)
        registry.add("/a", WatchFamily.CHILD, watcher)
        assert registry.count("/a") == 1

    def test_event(self):
        event = WatchedEvent(EventType.NODE_DELETED, KeeperState.SYNC_CONNECTED, "/a")
        assert event.get_type() == 2
        assert event.get_path() == "/a"
        assert str(event) == "NODE_DELETED[SYNC_CONNECTED]@/a"


@pytest.fixture
def mock():
    return ZooKeeperMock()


class TestSessionWatchers:

    @pytest.mark.asyncio
    async def test_data_watcher_fires_once(self, mock):
        session = mock.create_session()
        await session.create("/a", b"0")
        events = []
        await session.get_data("/a", events.append)

        await session.set_data("/a", b"1")
        await session.set_data("/a", b"2")
        await mock.settle()

        assert len(events) == 1
        assert events[0].type is EventType.NODE_DATA_CHANGED
        assert events[0].path == "/a"

    @pytest.mark.asyncio
    async def test_reregistration_continues_observation(self, mock):
        session = mock.create_session()
        await session.create("/a", b"0")
        events = []

        def watcher(event):
            events.append(event)
            session.get_data("/a", watcher)

        await session.get_data("/a", watcher)
        await session.set_data("/a", b"1")
        await mock.settle()
        await session.set_data("/a", b"2")
        await mock.settle()

        assert [e.type for e in events] == [EventType.NODE_DATA_CHANGED] * 2

    @pytest.mark.asyncio
    async def test_watcher_never_fires_synchronously(self, mock):
        session = mock.create_session()
        await session.create("/a", b"0")
        events = []
        await session.get_data("/a", events.append)
        future = session.set_data("/a", b"1")
        assert events == []
        await future
        await mock.settle()
        assert len(events) == 1

    @pytest.mark.asyncio
    async def test_data_watcher_on_delete(self, mock):
        session = mock.create_session()
        await session.create("/a", b"0")
        events = []
        await session.get_data("/a", events.append)
        await session.remove("/a")
        await mock.settle()
        assert [e.type for e in events] == [EventType.NODE_DELETED]

    @pytest.mark.asyncio
    async def test_child_watcher(self, mock):
        session = mock.create_session()
        await session.create("/p", b"")
        events = []
        await session.get_children("/p", events.append)
        await session.set_data("/p", b"data changes do not fire child watchers")
        await session.create("/p/c1", b"")
        await session.create("/p/c2", b"")
        await mock.settle()
        assert [(e.type, e.path) for e in events] == [(EventType.NODE_CHILDREN_CHANGED, "/p")]

    @pytest.mark.asyncio
    async def test_exists_watcher_on_absent_node(self, mock):
        session = mock.create_session()
        events = []
        assert await session.exists("/later", events.append) is None
        await session.create("/later", b"")
        await mock.settle()
        assert [e.type for e in events] == [EventType.NODE_CREATED]

    @pytest.mark.asyncio
    async def test_failed_read_leaves_no_watcher(self, mock):
        session = mock.create_session()
        with pytest.raises(NoNodeError):
            await session.get_data("/missing", lambda event: None)
        assert mock.store.watchers.count() == 0

    @pytest.mark.asyncio
    async def test_watchers_across_sessions(self, mock):
        reader = mock.create_session()
        writer = mock.create_session()
        await writer.create("/shared", b"")
        events = []
        await reader.get_data("/shared", events.append)
        await writer.set_data("/shared", b"x")
        await mock.settle()
        assert len(events) == 1

    @pytest.mark.asyncio
    async def test_chrooted_watcher_sees_full_path(self, mock):
        session = mock.create_session("zk:2181/app")
        await session.mkdirp("/node", data=b"")
        events = []
        await session.get_data("/node", events.append)
        await session.set_data("/node", b"1")
        await mock.settle()
        assert events[0].path == "/app/node"

    @pytest.mark.asyncio
    async def test_watcher_exception_does_not_block_others(self, mock):
        loop = asyncio.get_running_loop()
        contexts = []
        loop.set_exception_handler(lambda loop, context: contexts.append(context))
        try:
            session = mock.create_session()
            await session.create("/a", b"")
            events = []

            def broken(event):
                raise ValueError("bad watcher")

            await session.get_data("/a", broken)
            await session.exists("/a", events.append)
            await session.set_data("/a", b"1")
            await mock.settle()
        finally:
            loop.set_exception_handler(None)

        assert len(contexts) == 1
        assert len(events) == 1

    @pytest.mark.asyncio
    async def test_ephemeral_child_lifecycle(self, mock):
        """A child watcher sees an ephemeral child come and go."""
        writer = mock.create_session()
        reader = mock.create_session()
        top = "/workflow-engine-data-source"
        events = []

        await reader.create(top, b"", mode=CreateMode.PERSISTENT)
        children, _ = await reader.get_children(top, events.append)
        assert children == []

        await writer.create(f"{top}/xxx", b'{prop1: "foo"}', mode=CreateMode.EPHEMERAL)
        await mock.settle()
        assert len(events) == 1

        children, _ = await reader.get_children(top, events.append)
        assert children == ["xxx"]
        await writer.close()
        await mock.settle()

        assert [e.type for e in events] == [EventType.NODE_CHILDREN_CHANGED] * 2
        children, _ = await reader.get_children(top)
        assert children == []
