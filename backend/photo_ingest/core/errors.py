from enum import Enum


class IngestError(Exception):
    """Base class for every failure the ingestion service reports."""

    status_code: int = 500
    public_message: str = "Internal error"


class ClientInputError(IngestError):
    status_code = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.public_message = message


class MissingBody(ClientInputError):
    def __init__(self) -> None:
        super().__init__("Missing body")


class InvalidJsonBody(ClientInputError):
    def __init__(self) -> None:
        super().__init__("Invalid JSON body")


class ValidationErrorKind(str, Enum):
    MISSING_FILENAME = "MissingFilename"
    MISSING_FILETYPE = "MissingFiletype"
    UNSUPPORTED_TYPE = "UnsupportedType"
    MISSING_DATA = "MissingData"
    INVALID_ENCODING = "InvalidEncoding"
    EMPTY_PAYLOAD = "EmptyPayload"
    TOO_LARGE = "TooLarge"


class UploadValidationError(ClientInputError):
    def __init__(self, kind: ValidationErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind


class ConfigurationError(IngestError):
    public_message = "Server not configured"


class BackendError(IngestError):
    """Object store failure; detail is logged, never returned."""


class StoreUnavailable(BackendError):
    pass


class StoreRejected(BackendError):
    pass
