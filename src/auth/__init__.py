"""
Authentication state module.

Identity type and the auth-state stream consumed by profile sync.
"""

from src.auth.auth_stream import AuthStream, Identity, InMemoryAuthStream

__all__ = ["AuthStream", "Identity", "InMemoryAuthStream"]
