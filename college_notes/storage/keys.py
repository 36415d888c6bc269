# college_notes/storage/keys.py
"""
Object key naming.

Keys are laid out as

    <prefix>/<college>[/<UG|PG>]/<course>[/<subcourse>]/sem<N>/<subject>/<upload_type>/<file>_<millis>.<ext>

where prefix is "pending" until a note is approved and "college-notes" after.
The academic level segment only exists for NITK, the subcourse segment only for BHU.
Keys already in circulation depend on this exact layout.
"""
from __future__ import annotations

import re
import time
from typing import Mapping, Optional

PENDING_PREFIX = "pending"
APPROVED_PREFIX = "college-notes"

_SEGMENT_STRIP = re.compile(r"[^a-zA-Z0-9_-]")
_FILENAME_UNSAFE = re.compile(r'[<>:"/\\|?*]')
_WHITESPACE = re.compile(r"\s+")
_TRAILING_TIMESTAMP = re.compile(r"_\d{13}$")
_EMBEDDED_TIMESTAMP = re.compile(r"_\d{13}\.")
_KEY_TIMESTAMP = re.compile(r"_(\d{13})(?:\.[^./]*)?$")


def clean_segment(value: str) -> str:
    return _SEGMENT_STRIP.sub("", value or "").lower()


def clean_file_base(value: str) -> str:
    cleaned = _FILENAME_UNSAFE.sub("_", value)
    return _WHITESPACE.sub("_", cleaned.strip()).lower()


def split_filename(filename: str) -> tuple[str, str]:
    base, dot, ext = filename.rpartition(".")
    if not dot or not base:
        return filename, ""
    return base, ext.lower()


def has_timestamp(base: str) -> bool:
    return bool(_TRAILING_TIMESTAMP.search(base))


def folder_path(meta: Mapping[str, Optional[str]], is_pending: bool) -> str:
    college = clean_segment(meta.get("college") or "")
    parts = [PENDING_PREFIX if is_pending else APPROVED_PREFIX, college]

    level = (meta.get("program_level") or "").lower()
    if college == "nitk" and level in ("ug", "pg"):
        parts.append(level.upper())

    if meta.get("course"):
        parts.append(clean_segment(meta["course"]))
    if meta.get("subcourse") and college == "bhu":
        parts.append(clean_segment(meta["subcourse"]))
    if meta.get("semester"):
        parts.append(f"sem{meta['semester']}")
    if meta.get("subject"):
        parts.append(clean_segment(meta["subject"]))
    if meta.get("upload_type"):
        parts.append(clean_segment(meta["upload_type"]))

    return "/".join(parts)


def build_object_key(
    meta: Mapping[str, Optional[str]],
    original_file_name: str,
    is_pending: bool = True,
    now_ms: Optional[int] = None,
) -> str:
    """
    Build the storage key for a note file.

    A filename that already carries a 13-digit millisecond suffix (i.e. one
    produced by an earlier call) keeps it, so moving a file between prefixes
    never stacks timestamps.
    """
    base, ext = split_filename(original_file_name)
    base = clean_file_base(base)

    if not has_timestamp(base):
        stamp = now_ms if now_ms is not None else int(time.time() * 1000)
        base = f"{base}_{stamp}"

    filename = f"{base}.{ext}" if ext else base
    return f"{folder_path(meta, is_pending)}/{filename}"


def approved_key_for(current_key: str, meta: Mapping[str, Optional[str]]) -> str:
    current_filename = current_key.rsplit("/", 1)[-1]
    return build_object_key(meta, current_filename, is_pending=False)


def display_name_from_key(key: str) -> str:
    """'unit1_notes_1718000000000.pdf' -> 'unit1_notes.pdf'"""
    filename = key.rsplit("/", 1)[-1]
    return _EMBEDDED_TIMESTAMP.sub(".", filename, count=1)


def key_timestamp_ms(key: str) -> Optional[int]:
    """Millisecond stamp embedded in a key's filename, if any."""
    match = _KEY_TIMESTAMP.search(key.rsplit("/", 1)[-1])
    return int(match.group(1)) if match else None
