"""Per-exhibit media namespaces on the local filesystem.

Records only ever hold media filenames; the bytes are written by the upload
service into the storage root and adopted into an exhibit's directory here.
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path

LOGGER = logging.getLogger(__name__)

# purpose: keep exhibit media under one directory named by the exhibit uuid
# status: active

_UNSAFE = re.compile(r"[^A-Za-z0-9_.-]")


def safe_filename(filename: str) -> str:
    """Strip path components and characters unsafe for any storage backend."""

    base = os.path.basename(filename.replace("\\", "/"))
    return _UNSAFE.sub("_", base)


def provision_namespace(storage_root: Path, uuid: str) -> Path:
    """Create (if needed) and return the directory reserved for an exhibit."""

    namespace = Path(storage_root) / safe_filename(uuid)
    namespace.mkdir(parents=True, exist_ok=True)
    return namespace


def adopt_media(storage_root: Path, uuid: str, filename: str | None) -> str:
    """Move a staged upload into the exhibit namespace and return its stored name.

    Empty names pass through unchanged. A staged file that is missing is not
    an error: the stored name is still prefixed so the record points at the
    location the upload service will use.
    """

    # inputs: storage root, exhibit uuid, filename as sent by the client
    # outputs: "<uuid>_<filename>" stored on the record
    if not filename:
        return ""
    clean = safe_filename(filename)
    if clean.startswith(f"{uuid}_"):
        return clean
    stored = f"{uuid}_{clean}"
    staged = Path(storage_root) / clean
    target = provision_namespace(storage_root, uuid) / stored
    if staged.is_file():
        staged.replace(target)
        LOGGER.info("Moved staged media %s into exhibit %s", clean, uuid)
    else:
        LOGGER.warning("Staged media %s not found for exhibit %s", clean, uuid)
    return stored
