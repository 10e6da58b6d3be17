"""
Signup service.

Role-based document requirements for account signup, and the pending
profile document written once the account exists. Account creation and file
upload are handled by the external auth and object storage providers.
"""

import logging
import re
from datetime import datetime
from enum import Enum
from typing import Any, Mapping

from src.storage.document_store import DocumentStore
from src.utils.config_loader import ProfileSyncConfig, SignupConfig

logger = logging.getLogger(__name__)


class SignupRole(str, Enum):
    """Roles a new account may apply for."""

    CUSTOMER = "customer"
    RIDER = "rider"
    DRIVER = "driver"
    MERCHANT = "merchant"
    SUB_STATION = "sub_station"
    WAREHOUSE = "warehouse"
    SUPERVISOR = "supervisor"


ROLE_REQUIREMENTS: dict[SignupRole, list[str]] = {
    SignupRole.RIDER: ["Driving License (Front)", "Driving License (Back)", "NRC / ID Card"],
    SignupRole.DRIVER: ["Driving License (Heavy)", "Vehicle Registration", "NRC / ID Card"],
    SignupRole.MERCHANT: ["Business License", "Shop Photo", "Tax ID"],
    SignupRole.SUB_STATION: ["Manager ID", "Branch Permit"],
    SignupRole.WAREHOUSE: ["NRC / ID Card", "Recommendation Letter"],
    SignupRole.SUPERVISOR: ["NRC / ID Card", "Staff ID"],
    SignupRole.CUSTOMER: ["NRC / ID Card"],
}

BRANCH_ROLES = {SignupRole.SUB_STATION, SignupRole.WAREHOUSE, SignupRole.SUPERVISOR}

AUTH_ERROR_MESSAGES = {
    "auth/email-already-in-use": "This email is already registered. Please log in instead.",
    "auth/invalid-email": "Please enter a valid email address.",
    "auth/weak-password": "Password is too weak. Use at least 8 characters.",
    "auth/network-request-failed": "Network error. Please check your connection and try again.",
}


class SignupError(Exception):
    """Base exception for signup failures."""


class UploadTooLargeError(SignupError):
    """Raised when a document upload exceeds the size limit."""

    def __init__(self, doc_name: str, max_mb: int) -> None:
        super().__init__(f'File too large: "{doc_name}". Max {max_mb}MB.')
        self.doc_name = doc_name
        self.max_mb = max_mb


class MissingDocumentError(SignupError):
    """Raised when a required document has not been uploaded."""

    def __init__(self, doc_name: str) -> None:
        super().__init__(f"Please upload: {doc_name}")
        self.doc_name = doc_name


def parse_signup_role(role: SignupRole | str) -> SignupRole:
    """
    Resolve a signup role.

    Raises:
        ValueError: If the role is not offered at signup.
    """
    if isinstance(role, SignupRole):
        return role
    return SignupRole(str(role).strip().lower())


def required_documents(role: SignupRole | str) -> list[str]:
    """Documents an applicant for role must upload."""
    return list(ROLE_REQUIREMENTS.get(parse_signup_role(role), []))


def find_missing_document(role: SignupRole | str, uploaded: Mapping[str, Any]) -> str | None:
    """
    Return the first required document with no upload, or None.

    Args:
        role: Role applied for.
        uploaded: Document name -> uploaded file (or URL); falsy means missing.
    """
    for doc_name in required_documents(role):
        if not uploaded.get(doc_name):
            return doc_name
    return None


def requires_branch(role: SignupRole | str) -> bool:
    return parse_signup_role(role) in BRANCH_ROLES


def check_upload_size(doc_name: str, size_bytes: int, max_mb: int = 5) -> None:
    """
    Raises:
        UploadTooLargeError: If size_bytes is over max_mb megabytes.
    """
    if size_bytes > max_mb * 1024 * 1024:
        raise UploadTooLargeError(doc_name, max_mb)


def safe_storage_name(doc_name: str) -> str:
    """Make a document name safe for use in a storage path."""
    safe = re.sub(r"[^\w\-(). ]+", "_", doc_name)
    return re.sub(r"\s+", "_", safe)


def storage_path(uid: str, doc_name: str, timestamp_ms: int, prefix: str = "uploads") -> str:
    """Object storage path for an uploaded signup document."""
    return f"{prefix}/{uid}/{safe_storage_name(doc_name)}_{timestamp_ms}"


def format_auth_error(code: str | None, message: str | None = None) -> str:
    """Map an auth provider error code to a user-facing message."""
    if code in AUTH_ERROR_MESSAGES:
        return AUTH_ERROR_MESSAGES[code]
    return message or "Registration failed. Please try again."


class SignupService:
    """
    Writes pending profile documents for new accounts.

    New profiles start with status "pending" until an administrator
    reviews the uploaded documents.
    """

    def __init__(
        self,
        document_store: DocumentStore,
        config: SignupConfig | None = None,
        profile_config: ProfileSyncConfig | None = None,
    ):
        self.config = config or SignupConfig()
        self.profile_config = profile_config or ProfileSyncConfig()
        self._store = document_store

    def check_upload(self, doc_name: str, size_bytes: int) -> None:
        check_upload_size(doc_name, size_bytes, self.config.max_file_mb)

    def storage_path(self, uid: str, doc_name: str, timestamp_ms: int) -> str:
        return storage_path(uid, doc_name, timestamp_ms, prefix=self.config.upload_prefix)

    def build_profile_document(
        self,
        uid: str,
        email: str,
        full_name: str,
        phone: str,
        role: SignupRole | str,
        document_urls: Mapping[str, str],
        branch_id: str = "",
    ) -> dict[str, Any]:
        """Build the pending users/{uid} document."""
        return {
            "uid": uid,
            "email": email.strip(),
            "displayName": full_name.strip(),
            "phone": phone.strip(),
            "role": parse_signup_role(role).value,
            "branchId": branch_id.strip() or None,
            "status": "pending",
            "documents": dict(document_urls),
            "createdAt": datetime.utcnow().isoformat(),
            "authorityLevel": 1,
            "mustchangepassword": False,
        }

    def write_profile(
        self,
        uid: str,
        email: str,
        full_name: str,
        phone: str,
        role: SignupRole | str,
        document_urls: Mapping[str, str],
        branch_id: str = "",
    ) -> dict[str, Any]:
        """
        Write the pending profile for a newly created account.

        Raises:
            MissingDocumentError: If a required document URL is missing.
        """
        missing = find_missing_document(role, document_urls)
        if missing:
            raise MissingDocumentError(missing)

        document = self.build_profile_document(
            uid, email, full_name, phone, role, document_urls, branch_id
        )
        self._store.set(self.profile_config.users_collection, uid, document)
        logger.info(f"Wrote pending profile for {uid} (role={document['role']})")
        return document
