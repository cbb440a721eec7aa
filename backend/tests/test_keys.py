import re
from datetime import datetime, timedelta, timezone

import pytest

from photo_ingest.services.keys import (
    MAX_FILENAME_LENGTH,
    build_key,
    original_name_from_key,
    sanitize_file_name,
    sanitize_prefix,
)

SAFE_NAME = re.compile(r"^[A-Za-z0-9._-]*$")
NOW = datetime(2024, 5, 6, 7, 8, 9, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("../../etc/passwd", "passwd"),
        ("C:\\Users\\me\\pic.jpg", "pic.jpg"),
        ("nested/dir\\mixed/photo.png", "photo.png"),
        ("my photo (1).jpg", "my_photo__1_.jpg"),
        ("caf\u00e9.png", "caf_.png"),
        ("plain-name_01.webp", "plain-name_01.webp"),
    ],
)
def test_sanitize_file_name(raw, expected):
    assert sanitize_file_name(raw) == expected


@pytest.mark.parametrize("raw", ["", None, "dir/", "a\\b\\", "/"])
def test_sanitize_file_name_can_be_empty(raw):
    assert sanitize_file_name(raw) == ""


def test_sanitize_file_name_truncates():
    name = "x" * 300 + ".jpg"
    safe = sanitize_file_name("some/dir/" + name)
    assert len(safe) == MAX_FILENAME_LENGTH
    assert "/" not in safe


@pytest.mark.parametrize(
    "raw",
    ["../../etc/passwd", "we!rd\\na<m>e?.gif", "\u00fcber/\u00e7a va.png", "a" * 200, "ok.jpg"],
)
def test_sanitize_file_name_is_safe_and_idempotent(raw):
    safe = sanitize_file_name(raw)
    assert SAFE_NAME.match(safe)
    assert "/" not in safe and "\\" not in safe
    assert len(safe) <= MAX_FILENAME_LENGTH
    assert sanitize_file_name(safe) == safe


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        (None, ""),
        ("", ""),
        ("   ", ""),
        ("events/2024", "events/2024"),
        ("  /events/2024/ ", "events/2024"),
        ("///events", "events"),
        ("../../secret", "secret"),
        ("a/../b", "a/b"),
        ("a/./b", "a/b"),
        ("a..b", "ab"),
        ("....", ""),
        (".....", ""),
        ("events\\2024", "events/2024"),
        ("events / 2024", "events/2024"),
    ],
)
def test_sanitize_prefix(raw, expected):
    assert sanitize_prefix(raw) == expected


def test_sanitize_prefix_collapses_every_slash_run():
    # Every run of slashes collapses, not only the first one.
    assert sanitize_prefix("a//b///c////d") == "a/b/c/d"


@pytest.mark.parametrize(
    "raw",
    ["..", "../..", "a/..../b", "x...y", "..a..", "./../.../", "a/b..c/..d.."],
)
def test_sanitize_prefix_removes_traversal(raw):
    safe = sanitize_prefix(raw)
    assert ".." not in safe
    assert not safe.startswith("/") and not safe.endswith("/")
    assert "//" not in safe


@pytest.mark.parametrize("raw", ["events/2024", " a//b ", "x..y/..", "p/./q/", ". .. /z"])
def test_sanitize_prefix_is_idempotent(raw):
    once = sanitize_prefix(raw)
    assert sanitize_prefix(once) == once


def test_build_key_with_prefix():
    assert build_key("events/2024", "passwd", NOW) == "events/2024/20240506070809_passwd"


def test_build_key_without_prefix():
    assert build_key("", "a.jpg", NOW) == "20240506070809_a.jpg"


def test_build_key_is_deterministic():
    assert build_key("p", "a.jpg", NOW) == build_key("p", "a.jpg", NOW)


def test_build_key_uses_utc():
    local = NOW.astimezone(timezone(timedelta(hours=2)))
    assert build_key("", "a.jpg", local) == "20240506070809_a.jpg"
    naive = datetime(2024, 5, 6, 7, 8, 9)
    assert build_key("", "a.jpg", naive) == "20240506070809_a.jpg"


def test_build_key_with_nonce():
    assert build_key("p", "a.jpg", NOW, nonce="0a1b2c3d") == "p/20240506070809_0a1b2c3d_a.jpg"


@pytest.mark.parametrize(
    ("key", "expected"),
    [
        ("events/2024/20240506070809_passwd", "passwd"),
        ("20240506070809_0a1b2c3d_a.jpg", "a.jpg"),
        ("legacy/photo.png", "photo.png"),
    ],
)
def test_original_name_from_key(key, expected):
    assert original_name_from_key(key) == expected
