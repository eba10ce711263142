"""Helpers for building ZIP archives in tests."""
from __future__ import annotations

import io
import json
import struct
from pathlib import Path
from typing import Dict, List, Optional, Union
from zipfile import ZIP_DEFLATED, ZipFile

Content = Optional[Union[bytes, str]]


def composer_json(name: str = "acme/widget", version: str = "1.2.0", **extra) -> bytes:
    """Serialize a minimal composer.json."""
    document = {"name": name, "version": version}
    document.update(extra)
    return json.dumps(document, indent=4).encode()


def make_zip(entries: Dict[str, Content], compression: int = ZIP_DEFLATED) -> bytes:
    """
    Build a ZIP archive in memory.

    Entry names ending with "/" become directory entries.
    """
    buffer = io.BytesIO()
    with ZipFile(buffer, mode="w", compression=compression) as zf:
        for name, content in entries.items():
            if name.endswith("/"):
                zf.writestr(name, b"")
            else:
                zf.writestr(name, content if content is not None else b"")
    return buffer.getvalue()


def write_zip(path: Path, entries: Dict[str, Content], compression: int = ZIP_DEFLATED) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(make_zip(entries, compression))
    return path


def zip_names(source: Union[Path, bytes]) -> List[str]:
    """Entry names of an archive given as a path or raw bytes."""
    target = io.BytesIO(source) if isinstance(source, bytes) else source
    with ZipFile(target) as zf:
        return zf.namelist()


def zip_read(source: Union[Path, bytes], name: str) -> bytes:
    target = io.BytesIO(source) if isinstance(source, bytes) else source
    with ZipFile(target) as zf:
        return zf.read(name)


def patch_entry_header(data: bytes, name: str, *, method: Optional[int] = None, flag_bits: int = 0) -> bytes:
    """
    Set the compression method and/or extra general purpose flag bits of one
    entry, in both its local header and its central directory record.

    Builds archives that zipfile lists fine but cannot decode (e.g. method 9,
    deflate64, or the encryption bit set).
    """
    buffer = bytearray(data)
    encoded = name.encode()
    with ZipFile(io.BytesIO(data)) as zf:
        local = zf.getinfo(name).header_offset

    def patch(flags_at: int, method_at: int) -> None:
        if method is not None:
            struct.pack_into("<H", buffer, method_at, method)
        if flag_bits:
            (flags,) = struct.unpack_from("<H", buffer, flags_at)
            struct.pack_into("<H", buffer, flags_at, flags | flag_bits)

    patch(local + 6, local + 8)
    pos = buffer.find(b"PK\x01\x02")
    while pos != -1:
        (name_len,) = struct.unpack_from("<H", buffer, pos + 28)
        if bytes(buffer[pos + 46:pos + 46 + name_len]) == encoded:
            patch(pos + 8, pos + 10)
        pos = buffer.find(b"PK\x01\x02", pos + 4)
    return bytes(buffer)
