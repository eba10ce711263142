"""
ZIP archive helpers.

Reads a single entry without extracting the archive, and rewrites archives
entry by entry (rename, delete, replace) so unaffected entries keep their
compression method, timestamps and order. Rewrites go to a temp file next
to the archive which then atomically replaces it.
"""
from __future__ import annotations

import logging
import os
import posixpath
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Mapping, Optional, Sequence, Tuple
from zipfile import ZIP64_LIMIT, ZIP_STORED, BadZipFile, LargeZipFile, ZipFile, ZipInfo

from .errors import CorruptArchive
from .manifest import MANIFEST_NAME
from .path_safety import safe_relpath

__all__ = [
    "EntryAction",
    "open_archive",
    "locate_entry",
    "read_entry",
    "entry_prefix",
    "plan_strip_prefix",
    "rewrite_archive",
    "replace_entry",
]

logger = logging.getLogger(__name__)

COPY_CHUNK_SIZE = 1024 * 1024


@dataclass(frozen=True)
class EntryAction:
    """Planned fate of one archive entry; new_name None means delete."""
    name: str
    new_name: Optional[str]

    @property
    def is_delete(self) -> bool:
        return self.new_name is None

    @property
    def is_rename(self) -> bool:
        return self.new_name is not None and self.new_name != self.name


def open_archive(path: os.PathLike | str, source: Optional[str] = None) -> ZipFile:
    """
    Open path as a ZIP archive for reading.

    Raises:
        CorruptArchive: If the file is not a readable ZIP archive
    """
    try:
        return ZipFile(path, mode="r")
    except (BadZipFile, LargeZipFile, OSError, ValueError) as e:
        raise CorruptArchive(source or str(path), str(e)) from e


def locate_entry(zf: ZipFile, basename: str = MANIFEST_NAME) -> Optional[str]:
    """
    Find the entry whose file name is basename, at any directory depth.

    When several entries match, the shallowest wins; ties keep archive order.
    """
    best: Optional[Tuple[int, str]] = None
    for info in zf.infolist():
        if info.is_dir() or posixpath.basename(info.filename) != basename:
            continue
        depth = info.filename.count("/")
        if best is None or depth < best[0]:
            best = (depth, info.filename)
    return best[1] if best else None


def read_entry(zf: ZipFile, name: str) -> bytes:
    """Read one entry's content (only that entry is decompressed)."""
    with zf.open(name) as f:
        return f.read()


def entry_prefix(name: str) -> str:
    """Directory component of an entry name ('' for root entries)."""
    return posixpath.dirname(name)


def plan_strip_prefix(names: Sequence[str], prefix: str) -> Tuple[EntryAction, ...]:
    """
    Plan renames/deletes that make prefix the archive root.

    Entries under "prefix/" lose that prefix; the prefix directory entry itself
    and every entry outside the prefix are deleted. An empty prefix plans no
    change.

    Raises:
        ValueError: If a stripped name is not a safe relative path
    """
    names = tuple(names)
    if not prefix:
        return tuple(EntryAction(name, name) for name in names)

    marker = prefix.rstrip("/") + "/"
    plan = []
    for name in names:
        if not name.startswith(marker):
            plan.append(EntryAction(name, None))
            continue
        stripped = name[len(marker):]
        if not stripped:
            plan.append(EntryAction(name, None))
            continue
        safe_relpath(stripped.rstrip("/"))
        plan.append(EntryAction(name, stripped))
    return tuple(plan)


def _copy_info(info: ZipInfo, new_name: str) -> ZipInfo:
    copy = ZipInfo(new_name, date_time=info.date_time)
    copy.compress_type = ZIP_STORED if info.is_dir() else info.compress_type
    copy.comment = info.comment
    copy.create_system = info.create_system
    copy.external_attr = info.external_attr
    return copy


def rewrite_archive(
    path: os.PathLike | str,
    plan: Sequence[EntryAction] = (),
    replacements: Optional[Mapping[str, bytes]] = None,
) -> None:
    """
    Apply a rename/delete plan and content replacements to an archive.

    Entries absent from the plan are kept as-is. Replacement keys are original
    entry names. The archive is rebuilt into a sibling temp file and then
    atomically swapped in; on failure the original is left untouched.

    Raises:
        CorruptArchive: If the source archive cannot be read
        OSError: If writing fails
    """
    path = Path(path)
    actions: Dict[str, EntryAction] = {action.name: action for action in plan}
    replacements = dict(replacements or {})

    fd, temp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    os.close(fd)
    temp_path = Path(temp_name)
    try:
        with open_archive(path) as src, ZipFile(temp_path, mode="w") as dst:
            dst.comment = src.comment
            for info in src.infolist():
                action = actions.get(info.filename, EntryAction(info.filename, info.filename))
                if action.is_delete:
                    logger.debug(f"Dropping entry {info.filename}")
                    continue
                target = _copy_info(info, action.new_name)
                if info.filename in replacements:
                    dst.writestr(target, replacements[info.filename])
                elif info.is_dir():
                    dst.writestr(target, b"")
                else:
                    target.file_size = info.file_size
                    with src.open(info) as fin, \
                            dst.open(target, mode="w", force_zip64=info.file_size >= ZIP64_LIMIT) as fout:
                        shutil.copyfileobj(fin, fout, COPY_CHUNK_SIZE)
        os.replace(temp_path, path)
    except BaseException:
        try:
            temp_path.unlink()
        except FileNotFoundError:
            pass
        raise


def replace_entry(path: os.PathLike | str, name: str, data: bytes) -> None:
    """Overwrite the content of one entry, leaving every other entry untouched."""
    rewrite_archive(path, replacements={name: data})
