"""Turn untrusted filename and prefix strings into safe storage keys."""

import re
from datetime import datetime, timezone

MAX_FILENAME_LENGTH = 128
TIMESTAMP_FORMAT = "%Y%m%d%H%M%S"

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]")
_PATH_SEPARATORS = re.compile(r"[/\\]")


def sanitize_file_name(raw: str | None) -> str:
    """Keep the last path segment, replace unsafe characters, cap the length.

    Never raises: an empty or separator-only input yields ``""`` and the
    validator is responsible for rejecting it.
    """
    if not raw:
        return ""
    base = _PATH_SEPARATORS.split(str(raw))[-1]
    return _UNSAFE_FILENAME_CHARS.sub("_", base)[:MAX_FILENAME_LENGTH]


def _strip_traversal(segment: str) -> str:
    while ".." in segment:
        segment = segment.replace("..", "")
    return segment


def sanitize_prefix(raw: str | None) -> str:
    """Normalize a folder-like prefix into ``a/b/c`` form.

    Empty, ``.`` and ``..`` segments are dropped, so leading, trailing and
    repeated slashes all disappear. Any ``..`` left inside a segment is
    removed as well. Encoded sequences such as ``%2e%2e`` are not decoded.
    """
    if not raw:
        return ""
    text = str(raw).strip()
    if not text:
        return ""

    segments = []
    for segment in _PATH_SEPARATORS.split(text):
        segment = _strip_traversal(segment.strip()).strip()
        if segment in ("", "."):
            continue
        segments.append(segment)
    return "/".join(segments)


def timestamp_compact(now: datetime) -> str:
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT)


def build_key(prefix: str, filename: str, now: datetime, nonce: str | None = None) -> str:
    """Compose ``[prefix/]YYYYMMDDhhmmss_[nonce_]filename``.

    Without a nonce two uploads of the same name under the same prefix in
    the same second map to the same key.
    """
    head = f"{prefix}/" if prefix else ""
    stamp = timestamp_compact(now)
    if nonce:
        return f"{head}{stamp}_{nonce}_{filename}"
    return f"{head}{stamp}_{filename}"


_KEY_HEAD = re.compile(r"^\d{14}_(?:[0-9a-f]{8}_)?")


def original_name_from_key(key: str) -> str:
    """Recover the sanitized filename from the last segment of a key."""
    name = key.rsplit("/", 1)[-1]
    return _KEY_HEAD.sub("", name, count=1) or name
