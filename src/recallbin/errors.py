"""Error taxonomy exposed to API callers."""

from typing import Any, Dict, Optional


class RecallBinError(Exception):
    """Base error carrying a machine-readable tag and an HTTP status."""

    error_tag = "internal_error"
    status_code = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class InvalidInputError(RecallBinError):
    error_tag = "invalid_input"
    status_code = 400


class UnauthorizedError(RecallBinError):
    error_tag = "unauthorized"
    status_code = 401


class PermissionDeniedError(RecallBinError):
    error_tag = "permission_denied"
    status_code = 403


class NotFoundError(RecallBinError):
    error_tag = "not_found"
    status_code = 404


class ItemNotFoundError(NotFoundError):
    """Saved item not found."""

    def __init__(self, item_id: str):
        super().__init__(f"Item not found: {item_id}", {"item_id": item_id})
        self.item_id = item_id


class CollectionNotFoundError(NotFoundError):
    """Collection not found."""

    def __init__(self, collection_id: str):
        super().__init__(
            f"Collection not found: {collection_id}", {"collection_id": collection_id}
        )
        self.collection_id = collection_id


class DuplicateItemError(RecallBinError):
    """The URL is already saved; carries the existing item."""

    error_tag = "duplicate"
    status_code = 409

    def __init__(self, existing_item):
        super().__init__(
            "This URL is already saved",
            {"existing_item": existing_item.model_dump(mode="json")},
        )
        self.existing_item = existing_item


class QuotaExceededError(RecallBinError):
    """Daily enrichment quota reached; carries the quota snapshot."""

    error_tag = "quota_exceeded"
    status_code = 429

    def __init__(self, snapshot):
        super().__init__(
            f"You have reached your daily limit of {snapshot.limit} AI analyses. "
            "Please try again tomorrow.",
            {"quota": snapshot.model_dump(mode="json")},
        )
        self.snapshot = snapshot


class InternalError(RecallBinError):
    """Catch-all for unhandled store or service failures."""

    error_tag = "internal_error"
    status_code = 500

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        detail = f"{message}: {cause}" if cause is not None else message
        super().__init__(detail)
        self.public_message = "An unexpected error occurred"
