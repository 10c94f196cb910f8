"""
Integration tests for glin-forge event watching.

These tests run the real BridgeClient and EventWatcher against a fake
bridge served by aiohttp on a loopback port. No chain is required.

Run with:
    pytest tests/integration/ -v -m integration

Skip with:
    pytest -m "not integration"
"""
