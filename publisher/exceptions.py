"""Custom exception classes for the publisher pipeline."""

from typing import Optional


class PublisherException(Exception):
    """
    Base exception class for all publish-run failures.

    Every subclass carries a stable code that is logged when the run aborts.
    """
    code = "PUBLISHER_ERROR"
    exit_code = 1


class ConfigurationError(PublisherException):
    """
    Raised when required settings are missing or the keystore cannot be unlocked.
    """
    code = "CONFIGURATION_ERROR"


class PreconditionFailedError(PublisherException):
    """
    Raised when no build artifact matches or the extracted workspace is incomplete.
    """
    code = "PRECONDITION_FAILED"


class ResourceUnavailableError(PublisherException):
    """
    Raised when no postage batch is both alive and usable.
    """
    code = "RESOURCE_UNAVAILABLE"


class UploadFailureError(PublisherException):
    """
    Raised when the node rejects the upload or its tag cannot be read.
    """
    code = "UPLOAD_FAILURE"


class ReplicationTimeoutError(PublisherException):
    """
    Raised when chunk sync stops making progress for the whole stall budget.
    """
    code = "REPLICATION_TIMEOUT"

    def __init__(self, message: str, progress: int = 0, total: int = 0):
        super().__init__(message)
        self.progress = progress
        self.total = total


class PointerPublishFailureError(PublisherException):
    """
    Raised when signing or writing the feed update fails.

    The content itself may already be stored on the network; content_reference
    identifies it so the inconsistency can be reported.
    """
    code = "POINTER_PUBLISH_FAILURE"

    def __init__(self, message: str, content_reference: Optional[str] = None):
        super().__init__(message)
        self.content_reference = content_reference


class StorageGatewayError(Exception):
    """
    Raised by gateway implementations when the storage node request fails.
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
