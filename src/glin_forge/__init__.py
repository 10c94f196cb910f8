"""
glin-forge Python SDK.

Client-side helpers for scripts launched by `glin-forge run`. The events
subpackage watches contract events through the local glin-forge bridge and
dispatches them to registered listeners.
"""

__version__ = "0.1.0"
