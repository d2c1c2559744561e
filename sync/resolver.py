"""Last-writer-wins merge of a local and a remote copy of one record.

Records are plain mappings carrying an ``updated_at`` epoch-ms timestamp.
"""
from __future__ import annotations

from typing import Any, Iterable, Mapping, Optional


def _is_missing(value: Any) -> bool:
    return value is None or value == ""


def resolve(
    local: Optional[Mapping[str, Any]],
    remote: Optional[Mapping[str, Any]],
    preserve: Iterable[str] = (),
    union_fields: Iterable[str] = (),
) -> Optional[dict]:
    """Return the merged record.

    The copy with the strictly greater ``updated_at`` wins wholesale; on a tie
    the remote copy wins. When the remote copy wins, ``preserve`` fields it
    lacks are taken from the local copy, and ``union_fields`` lists are
    replaced by the union if the local list is a strict superset.
    """
    if remote is None:
        return dict(local) if local is not None else None
    if local is None:
        return dict(remote)
    if local.get("updated_at", 0) > remote.get("updated_at", 0):
        return dict(local)

    merged = dict(remote)
    for field in preserve:
        if _is_missing(merged.get(field)) and not _is_missing(local.get(field)):
            merged[field] = local[field]
    for field in union_fields:
        local_items = set(local.get(field) or ())
        remote_items = set(remote.get(field) or ())
        if local_items > remote_items:
            merged[field] = sorted(local_items | remote_items)
    return merged


def records_differ(
    first: Optional[Mapping[str, Any]],
    second: Optional[Mapping[str, Any]],
    ignore: Iterable[str] = (),
) -> bool:
    """True when the two records disagree on any field outside ``ignore``."""
    if first is None or second is None:
        return first is not second
    skipped = set(ignore)
    keys = (set(first) | set(second)) - skipped
    return any(first.get(key) != second.get(key) for key in keys)
