"""
Integration test fixtures.

Shared fake bridge fixtures live in tests/conftest.py.
"""

import pytest

# Mark all tests in this directory as integration tests
pytestmark = pytest.mark.integration


@pytest.fixture
def populated_bridge(fake_bridge):
    """Fake bridge with three events at blocks 100, 101, 103."""
    fake_bridge.emit(100, "Transfer", {"from": "alice", "to": "bob", "value": 10})
    fake_bridge.emit(101, "Approval", {"owner": "alice", "spender": "carol", "value": 5})
    fake_bridge.emit(103, "Transfer", {"from": "bob", "to": "carol", "value": 3})
    return fake_bridge
