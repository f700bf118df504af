"""Custom exception hierarchy for the admin console.

Exception tree:
    AdminError
    +-- ConfigError           (missing credential or backend setting)
    +-- RemoteSourceError     (API-Football HTTP/transport failure)
    |   +-- RateLimited       (HTTP 429)
    |   +-- FixtureNotFound   (detail lookup returned nothing)
    +-- StoreError            (document store failure)
    |   +-- DocumentNotFound  (read/update of a missing document)
    +-- ValidationFailed      (form or record failed validation)
    |   +-- InvalidStatus     (unknown moderation state)
    +-- NotificationError     (push provider rejected the broadcast)
"""

from typing import Optional


class AdminError(Exception):
    """Base exception for all admin console errors."""

    def __init__(
        self,
        message: str,
        *,
        url: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        self.url = url
        self.status_code = status_code
        super().__init__(message)


class ConfigError(AdminError):
    """A required setting (usually a credential) is not configured."""

    pass


class RemoteSourceError(AdminError):
    """Fetch from the remote match source failed.

    Raised for non-success HTTP responses, transport errors and API-level
    ``errors`` payloads. 5xx and transport failures are retried by the
    client; anything that escapes is an import failure for that item.
    """

    pass


class RateLimited(RemoteSourceError):
    """Server returned HTTP 429 Too Many Requests.

    This is a retriable error -- the client backs off and retries.
    """

    pass


class FixtureNotFound(RemoteSourceError):
    """The remote source has no fixture with the requested id."""

    pass


class StoreError(AdminError):
    """Base class for document store failures."""

    pass


class DocumentNotFound(StoreError):
    """The requested document does not exist.

    Distinct from StoreError so callers can report "not found" instead of
    a generic failure.
    """

    def __init__(self, collection: str, doc_id: str):
        self.collection = collection
        self.doc_id = doc_id
        super().__init__(f"No document {collection}/{doc_id}")


class ValidationFailed(AdminError):
    """Input failed form-level validation."""

    pass


class InvalidStatus(ValidationFailed):
    """Requested moderation status is not one of active/suspended/banned."""

    pass


class NotificationError(AdminError):
    """The push notification provider rejected or failed the broadcast."""

    pass
