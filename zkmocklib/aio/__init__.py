"""Asynchronous surface of zkmocklib.

Sessions hand out ``asyncio.Future`` objects settled by the
DeferredScheduler on a later loop turn. Tree mutations themselves happen
immediately and atomically in the synchronous core.
"""

from .scheduler import DeferredScheduler
from .session import Session, SessionState, CONNECTION_EVENTS

__all__ = [
    'DeferredScheduler',
    'Session',
    'SessionState',
    'CONNECTION_EVENTS',
]
