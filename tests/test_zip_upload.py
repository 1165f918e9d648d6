from __future__ import annotations

import io
import struct
import zipfile
from pathlib import Path

import pytest

from adapters.zip_upload import read_chat_export
from core.errors import InputError

TRANSCRIPT = "[01/01/24, 9:00:00 AM] A: hello"


def _zip(entries: dict[str, bytes]) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as archive:
        for name, data in entries.items():
            archive.writestr(name, data)
    return buffer.getvalue()


def test_reads_chat_entry_from_bytes() -> None:
    data = _zip({"IMG-0001.jpg": b"\xff\xd8", "WhatsApp Chat - Group_chat.txt": TRANSCRIPT.encode("utf-8")})
    assert read_chat_export(data, 1024 * 1024) == TRANSCRIPT


def test_reads_chat_entry_from_path(tmp_path: Path) -> None:
    path = tmp_path / "export.zip"
    path.write_bytes(_zip({"_chat.txt": TRANSCRIPT.encode("utf-8")}))
    assert read_chat_export(str(path), 1024 * 1024) == TRANSCRIPT


def test_missing_chat_entry() -> None:
    with pytest.raises(InputError, match="does not contain"):
        read_chat_export(_zip({"notes.txt": b"x"}), 1024 * 1024)


def test_not_a_zip() -> None:
    with pytest.raises(InputError, match="Failed to read ZIP"):
        read_chat_export(b"plain text", 1024 * 1024)


def test_oversized_file_rejected_before_reading(tmp_path: Path) -> None:
    path = tmp_path / "big.zip"
    path.write_bytes(b"0" * 2048)
    with pytest.raises(InputError, match="exceeds 1 KB"):
        read_chat_export(str(path), 1024)


def test_missing_path() -> None:
    with pytest.raises(InputError):
        read_chat_export("/nonexistent/export.zip", 1024)


def test_invalid_utf8_is_replaced() -> None:
    text = read_chat_export(_zip({"_chat.txt": b"ok \xff"}), 1024)
    assert text.startswith("ok ")


def _patched_entry(flag_bits: int = 0, method: int = zipfile.ZIP_STORED) -> bytes:
    """Chat export whose local and central headers carry the given flags and method."""

    data = bytearray(_zip_stored({"WhatsApp_chat.txt": TRANSCRIPT.encode("utf-8")}))
    local = data.find(b"PK\x03\x04")
    central = data.find(b"PK\x01\x02")
    struct.pack_into("<HH", data, local + 6, flag_bits, method)
    struct.pack_into("<HH", data, central + 8, flag_bits, method)
    return bytes(data)


def _zip_stored(entries: dict[str, bytes]) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_STORED) as archive:
        for name, data in entries.items():
            archive.writestr(name, data)
    return buffer.getvalue()


def test_encrypted_entry_is_input_error() -> None:
    with pytest.raises(InputError, match="Failed to read ZIP"):
        read_chat_export(_patched_entry(flag_bits=0x1), 1024 * 1024)


def test_unsupported_compression_is_input_error() -> None:
    with pytest.raises(InputError, match="Failed to read ZIP"):
        read_chat_export(_patched_entry(method=99), 1024 * 1024)


def test_corrupt_deflate_stream_is_input_error() -> None:
    data = bytearray(_zip({"_chat.txt": TRANSCRIPT.encode("utf-8") * 20}))
    local = data.find(b"PK\x03\x04")
    name_len, extra_len = struct.unpack_from("<HH", data, local + 26)
    start = local + 30 + name_len + extra_len
    data[start : start + 8] = b"\xff" * 8
    with pytest.raises(InputError, match="Failed to read ZIP"):
        read_chat_export(bytes(data), 1024 * 1024)
