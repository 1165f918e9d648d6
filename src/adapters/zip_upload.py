"""ZIP upload adapter.

Chat exports arrive as a compressed archive holding a single ``*_chat.txt``
transcript next to any attached media.
"""

from __future__ import annotations

import io
import os
import re
import zipfile
import zlib
from typing import Union

from core.errors import InputError

CHAT_ENTRY_RE = re.compile(r"_chat\.txt$", re.IGNORECASE)


def read_chat_export(source: Union[str, bytes], max_bytes: int) -> str:
    """Return the transcript text from an export archive path or bytes."""

    if isinstance(source, bytes):
        data = source
    else:
        if not os.path.isfile(source):
            raise InputError(f"File not found: {source}")
        # Size is checked before anything is read or decompressed.
        if os.path.getsize(source) > max_bytes:
            raise InputError(f"File size exceeds {max_bytes // 1024} KB limit.")
        with open(source, "rb") as handle:
            data = handle.read()

    if len(data) > max_bytes:
        raise InputError(f"File size exceeds {max_bytes // 1024} KB limit.")

    # Encrypted or unsupported entries only fail once they are read.
    try:
        with zipfile.ZipFile(io.BytesIO(data)) as archive:
            entry = next((name for name in archive.namelist() if CHAT_ENTRY_RE.search(name)), None)
            if entry is None:
                raise InputError("ZIP does not contain a chat export.")
            raw = archive.read(entry)
    except (zipfile.BadZipFile, RuntimeError, NotImplementedError, zlib.error, OSError) as exc:
        raise InputError("Failed to read ZIP. Please try another file.") from exc

    return raw.decode("utf-8", errors="replace")
