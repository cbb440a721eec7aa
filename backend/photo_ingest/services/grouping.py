"""Folder-style grouping of listed objects by their leading key segments."""

from collections.abc import Iterable
from datetime import datetime
from typing import Literal

from photo_ingest.schemas import GroupRead, StoredObjectRead

ROOT_GROUP = "root"

SortField = Literal["name", "count", "recent"]


def group_name(key: str, depth: int = 1) -> str:
    parts = key.split("/")
    if len(parts) == 1:
        return ROOT_GROUP
    if depth == 2 and len(parts) > 2:
        return f"{parts[0]}/{parts[1]}"
    return parts[0]


def group_objects(objects: Iterable[StoredObjectRead], depth: int = 1) -> list[GroupRead]:
    if depth not in (1, 2):
        raise ValueError("depth must be 1 or 2")

    by_folder: dict[str, list[StoredObjectRead]] = {}
    for item in objects:
        by_folder.setdefault(group_name(item.key, depth), []).append(item)

    groups = []
    for name, photos in by_folder.items():
        stamps = [p.last_modified for p in photos if p.last_modified is not None]
        groups.append(
            GroupRead(
                name=name,
                count=len(photos),
                latest=max(stamps) if stamps else None,
                photos=photos,
            )
        )
    return groups


def _recent_key(group: GroupRead) -> float:
    latest: datetime | None = group.latest
    return latest.timestamp() if latest else 0.0


def sort_groups(
    groups: list[GroupRead],
    by: SortField = "name",
    descending: bool = False,
) -> list[GroupRead]:
    if by == "name":
        return sorted(groups, key=lambda g: g.name, reverse=descending)
    if by == "count":
        return sorted(groups, key=lambda g: g.count, reverse=descending)
    if by == "recent":
        return sorted(groups, key=_recent_key, reverse=descending)
    raise ValueError(f"unknown sort field: {by}")
