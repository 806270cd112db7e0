"""Testing utilities for zkmocklib consumers."""

from .fixtures import StoreTestHelper

__all__ = ['StoreTestHelper']
