"""Custom exception classes for the upload coordinator."""

from typing import Optional


class VaultError(Exception):
    """
    Base exception class for all coordinator errors.
    """
    code = "INTERNAL_ERROR"


class InvalidInputError(VaultError):
    """
    Raised when a request carries a bad name, size or chunk number.
    Never retried automatically.
    """
    code = "INVALID_INPUT"


class InvalidNameError(InvalidInputError):
    code = "INVALID_NAME"


class InvalidSizeError(InvalidInputError):
    code = "INVALID_SIZE"


class InvalidChunkNumberError(InvalidInputError):
    code = "INVALID_CHUNK_NUMBER"


class NotFoundError(VaultError):
    code = "NOT_FOUND"


class SourceNotFoundError(NotFoundError):
    """
    Raised when the source of a rename does not exist.
    """
    code = "SOURCE_NOT_FOUND"


class ObjectNotFoundError(NotFoundError):
    code = "OBJECT_NOT_FOUND"


class SessionNotFoundError(NotFoundError):
    """
    Raised when an upload session id is unknown or does not match the key.
    """
    code = "SESSION_NOT_FOUND"


class ConflictError(VaultError):
    code = "CONFLICT"


class DestinationExistsError(ConflictError):
    """
    Raised when a rename targets a key that is already taken.
    """
    code = "DESTINATION_EXISTS"


class SessionAlreadyFinalizedError(ConflictError):
    """
    Raised when a session that is completed, aborted, or being finalized
    receives another sign or completion request.
    """
    code = "SESSION_ALREADY_FINALIZED"


class IncompleteManifestError(VaultError):
    """
    Raised when completion receipts have gaps, duplicates or empty tags.
    """
    code = "INCOMPLETE_MANIFEST"


class BackendUnavailableError(VaultError):
    """
    Raised when a call to the object store fails. Safe to retry with backoff.
    """
    code = "BACKEND_UNAVAILABLE"

    def __init__(
        self,
        operation: str,
        key: Optional[str] = None,
        session_id: Optional[str] = None,
        reason: str = "",
    ):
        self.operation = operation
        self.key = key
        self.session_id = session_id
        self.reason = reason

        context = [f"operation={operation}"]
        if key is not None:
            context.append(f"key={key}")
        if session_id is not None:
            context.append(f"session_id={session_id}")
        message = f"Object store call failed ({', '.join(context)})"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
