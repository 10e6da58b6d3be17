"""
Data models for profile synchronization.

Roles, the cached profile record and the published sync state.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from src.auth.auth_stream import Identity


class Role(str, Enum):
    """Staff and customer roles that gate dashboard access."""

    SUPER_ADMIN = "super_admin"
    MANAGER = "manager"
    SUB_STATION_MANAGER = "sub_station_manager"
    SUPERVISOR = "supervisor"
    WAREHOUSE = "warehouse"
    RIDER_DRIVER = "rider_driver"
    MERCHANT = "merchant"
    VENDOR = "vendor"
    CUSTOMER = "customer"
    ACCOUNTANT = "accountant"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Any) -> "Role":
        """
        Map a stored role string onto the closed role set.

        Signup role names are accepted as aliases. Anything else,
        including a missing role, becomes Role.UNKNOWN.
        """
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return cls.UNKNOWN
        key = value.strip().lower()
        if key in ROLE_ALIASES:
            return ROLE_ALIASES[key]
        try:
            return cls(key)
        except ValueError:
            return cls.UNKNOWN


ROLE_ALIASES = {
    "rider": Role.RIDER_DRIVER,
    "driver": Role.RIDER_DRIVER,
    "sub_station": Role.SUB_STATION_MANAGER,
}

# Document fields mapped onto ProfileRecord attributes
PROFILE_FIELDS = {
    "stationId": "station_id",
    "stationName": "station_name",
    "displayName": "display_name",
    "email": "email",
    "phone": "phone",
    "active": "active",
}


@dataclass(frozen=True)
class ProfileRecord:
    """
    Read-only mirror of a user's profile document.

    Attributes:
        role: Role parsed onto the closed role set.
        station_id: Station the user belongs to, for station staff.
        station_name: Display name of that station.
        display_name: User display name.
        email: Contact email.
        phone: Contact phone.
        active: Whether the account is active, when the document says so.
        raw_role: Role string exactly as stored.
        extra: Remaining document fields, untouched.
    """

    role: Role
    station_id: str | None = None
    station_name: str | None = None
    display_name: str | None = None
    email: str | None = None
    phone: str | None = None
    active: bool | None = None
    raw_role: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_document(cls, data: dict[str, Any]) -> "ProfileRecord":
        """
        Create a ProfileRecord from profile document fields.

        Args:
            data: Raw document fields (camelCase keys).

        Returns:
            ProfileRecord: Parsed profile.
        """
        raw_role = data.get("role")
        known = {attr: data.get(key) for key, attr in PROFILE_FIELDS.items()}
        extra = {k: v for k, v in data.items() if k != "role" and k not in PROFILE_FIELDS}
        return cls(
            role=Role.parse(raw_role),
            raw_role=raw_role if isinstance(raw_role, str) else None,
            extra=extra,
            **known,
        )

    @classmethod
    def default_for(cls, identity: Identity, role: Role = Role.CUSTOMER) -> "ProfileRecord":
        """Baseline profile used when the document is missing or unreadable."""
        return cls(
            role=role,
            display_name=identity.display_name,
            email=identity.email,
            raw_role=role.value,
        )


class SyncPhase(str, Enum):
    """Profile sync state machine phases."""

    LOGGED_OUT = "logged_out"
    LOADING_PROFILE = "loading_profile"
    READY = "ready"
    DEFAULTED_PROFILE = "defaulted_profile"


@dataclass(frozen=True)
class SyncState:
    """
    Published view of who is signed in and what their profile is.

    Attributes:
        identity: Signed-in identity, or None.
        profile: Cached profile, or None while logged out or loading.
        loading: True between an identity change and its first profile value.
        phase: State machine phase.
    """

    identity: Identity | None
    profile: ProfileRecord | None
    loading: bool
    phase: SyncPhase

    @classmethod
    def logged_out(cls, loading: bool = False) -> "SyncState":
        return cls(identity=None, profile=None, loading=loading, phase=SyncPhase.LOGGED_OUT)

    @property
    def role(self) -> Role | None:
        return self.profile.role if self.profile else None

    def has_role(self, *roles: Role) -> bool:
        """True if a profile is loaded and its role is one of roles."""
        return self.profile is not None and self.profile.role in roles
