"""Filename helpers for turning untrusted upload names into safe stored names."""
import os
import re
import secrets
import time
from pathlib import Path
from typing import Iterable


class StoredNames:
    """Generate and check the names blobs are stored under."""

    MAX_SUFFIX_LENGTH = 100
    FALLBACK_NAME = "document"

    _UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")
    _DOT_RUNS = re.compile(r"\.{2,}")

    @staticmethod
    def sanitize(original_filename: str) -> str:
        """
        Reduce an untrusted filename to ``[A-Za-z0-9._-]``.

        Directory components are dropped, runs of dots are collapsed and
        leading dots stripped so the result can never act as a traversal
        sequence or a hidden file.
        """
        # Browsers on Windows may send a full client path
        base = re.split(r"[\\/]", original_filename or "")[-1]
        safe = StoredNames._UNSAFE_CHARS.sub("_", base)
        safe = StoredNames._DOT_RUNS.sub(".", safe).lstrip(".")

        if len(safe) > StoredNames.MAX_SUFFIX_LENGTH:
            stem, ext = os.path.splitext(safe)
            ext = ext[:16]
            safe = stem[: StoredNames.MAX_SUFFIX_LENGTH - len(ext)] + ext

        return safe or StoredNames.FALLBACK_NAME

    @staticmethod
    def generate(original_filename: str) -> str:
        """Build a fresh stored name: ``<epoch millis>_<random hex>_<sanitized>``."""
        millis = time.time_ns() // 1_000_000
        return f"{millis}_{secrets.token_hex(4)}_{StoredNames.sanitize(original_filename)}"

    @staticmethod
    def is_safe(stored_name: str) -> bool:
        """Check that a stored name is a single plain path component."""
        if not stored_name or stored_name.startswith("."):
            return False
        if "/" in stored_name or "\\" in stored_name or "\x00" in stored_name:
            return False
        if ".." in stored_name or os.path.isabs(stored_name):
            return False
        return True

    @staticmethod
    def has_allowed_extension(filename: str, allowed: Iterable[str]) -> bool:
        allowed = {ext.lower() for ext in allowed}
        if not allowed:
            return True
        return Path(filename).suffix.lower() in allowed
