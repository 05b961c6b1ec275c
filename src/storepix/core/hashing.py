"""Content fingerprints used for change detection."""

import hashlib
from pathlib import Path


def hash_bytes(data: bytes) -> str:
    """Return the hex MD5 digest of ``data``.

    MD5 is only a change-detection signal here, not a security boundary.
    Bytes are hashed as-is: no newline or encoding normalization.
    """
    return hashlib.md5(data).hexdigest()  # noqa: S324


def hash_file(path: Path) -> str:
    """Fingerprint a file's raw bytes."""
    return hash_bytes(Path(path).read_bytes())
