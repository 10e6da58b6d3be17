"""
Profile sync module.

Mirrors the signed-in user's profile document into a published SyncState.
"""

from src.profile_sync.models import ProfileRecord, Role, SyncPhase, SyncState
from src.profile_sync.profile_sync import ProfileSync

__all__ = ["ProfileRecord", "ProfileSync", "Role", "SyncPhase", "SyncState"]
