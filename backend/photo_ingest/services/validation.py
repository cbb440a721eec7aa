import base64
import binascii
from collections.abc import Collection
from dataclasses import dataclass

from photo_ingest.core.errors import UploadValidationError, ValidationErrorKind
from photo_ingest.schemas import UploadRequest
from photo_ingest.services.keys import sanitize_file_name, sanitize_prefix


@dataclass(frozen=True)
class ValidatedUpload:
    filename: str
    content_type: str
    data: bytes
    prefix: str

    @property
    def size(self) -> int:
        return len(self.data)


def decode_payload(encoded: str) -> bytes:
    compact = "".join(encoded.split())
    compact += "=" * (-len(compact) % 4)
    return base64.b64decode(compact, validate=True)


def validate(
    request: UploadRequest,
    allowed_types: Collection[str],
    max_bytes: int,
) -> ValidatedUpload:
    """Check an upload in a fixed order and stop at the first failure.

    Raises ``UploadValidationError`` tagged with the failing check.
    """
    filename = sanitize_file_name(request.filename)
    if not filename:
        raise UploadValidationError(ValidationErrorKind.MISSING_FILENAME, "filename required")

    filetype = request.filetype.strip()
    if not filetype:
        raise UploadValidationError(ValidationErrorKind.MISSING_FILETYPE, "filetype required")
    if filetype not in allowed_types:
        raise UploadValidationError(ValidationErrorKind.UNSUPPORTED_TYPE, "Unsupported filetype")

    if not request.data:
        raise UploadValidationError(ValidationErrorKind.MISSING_DATA, "data required")
    try:
        data = decode_payload(request.data)
    except (binascii.Error, ValueError):
        raise UploadValidationError(
            ValidationErrorKind.INVALID_ENCODING, "data must be base64"
        ) from None

    if not data:
        raise UploadValidationError(ValidationErrorKind.EMPTY_PAYLOAD, "empty data")
    if len(data) > max_bytes:
        raise UploadValidationError(
            ValidationErrorKind.TOO_LARGE, f"file too large (>{max_bytes} bytes)"
        )

    return ValidatedUpload(
        filename=filename,
        content_type=filetype,
        data=data,
        prefix=sanitize_prefix(request.prefix),
    )
