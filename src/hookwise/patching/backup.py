"""Backup-then-replace file commits.

No file is ever rewritten unless a backup of its current content was
written first. Backups are named ``<file name>.<timestamp>.backup``, are
created with exclusive-create semantics so a name is never reused, and
are never deleted by Hookwise. Each backup has a
``<backup name>.source`` sidecar holding the absolute path of the file it
was taken from, so same-named files in different directories stay apart.
"""

from __future__ import annotations

import os
import re
import shutil
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from ..exceptions import BackupFailureError, PatchError, StaleSuggestionError
from ..exceptions.patch import MISMATCH
from ..logging_config import get_logger

logger = get_logger(__name__)

BACKUP_SUFFIX = ".backup"
SOURCE_SUFFIX = ".source"
_STAMP_FORMAT = "%Y%m%d_%H%M%S_%f"
_BACKUP_RE = re.compile(
    r"^(?P<name>.+)\.(?P<stamp>\d{8}_\d{6}_\d{6})(?:\.(?P<seq>\d+))?" + re.escape(BACKUP_SUFFIX) + "$"
)
_MAX_NAME_ATTEMPTS = 100


@dataclass(frozen=True)
class BackupRef:
    """Location of one backup and the file it was taken from."""

    path: Path
    original_name: str
    created_at: datetime
    source: Optional[Path] = None


def _read(path: Path) -> str:
    with open(path, encoding="utf-8", newline="") as f:
        return f.read()


def _source_path(backup_path: Path) -> Path:
    return backup_path.with_name(backup_path.name + SOURCE_SUFFIX)


def _write_source(backup_path: Path, source: Path, target: Path) -> None:
    sidecar = _source_path(backup_path)
    try:
        with open(sidecar, "x", encoding="utf-8") as f:
            f.write(str(source) + "\n")
    except OSError as e:
        raise BackupFailureError(target, f"cannot write {sidecar}: {e}")


def read_backup_source(backup_path: Path) -> Optional[Path]:
    """The file a backup was taken from, or None if its sidecar is missing."""
    try:
        text = _source_path(Path(backup_path)).read_text(encoding="utf-8").strip()
    except OSError:
        return None
    return Path(text) if text else None


def write_backup(target: Path, content: str, backup_dir: Path) -> BackupRef:
    """Write ``content`` as a new backup of ``target``.

    Raises:
        BackupFailureError: if no backup could be written
    """
    now = datetime.now()
    stamp = now.strftime(_STAMP_FORMAT)
    try:
        backup_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise BackupFailureError(target, f"cannot create backup directory {backup_dir}: {e}")

    for seq in range(_MAX_NAME_ATTEMPTS):
        suffix = f".{seq}" if seq else ""
        backup_path = backup_dir / f"{target.name}.{stamp}{suffix}{BACKUP_SUFFIX}"
        try:
            with open(backup_path, "x", encoding="utf-8", newline="") as f:
                f.write(content)
        except FileExistsError:
            continue
        except OSError as e:
            raise BackupFailureError(target, f"cannot write {backup_path}: {e}")
        source = Path(target).resolve()
        _write_source(backup_path, source, target)
        logger.debug("Backup created: %s (source: %s)", backup_path, source)
        return BackupRef(path=backup_path, original_name=target.name, created_at=now, source=source)

    raise BackupFailureError(target, "no unique backup name available")


def _replace_atomically(target: Path, content: str) -> None:
    tmp_path = target.with_name(f".{target.name}.hookwise.tmp")
    try:
        with open(tmp_path, "w", encoding="utf-8", newline="") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        shutil.copymode(target, tmp_path)
        os.replace(tmp_path, target)
    except OSError as e:
        if tmp_path.exists():
            tmp_path.unlink()
        raise PatchError(f"Cannot write {target}", details={"filepath": str(target), "reason": str(e)})


def commit(
    file_path: Path,
    new_content: str,
    backup_dir: Path,
    expected_content: Optional[str] = None,
) -> Optional[BackupRef]:
    """Back up ``file_path`` and replace its content with ``new_content``.

    Args:
        file_path: File to rewrite
        new_content: Replacement content
        backup_dir: Directory receiving the backup
        expected_content: Snapshot the new content was computed from; if the
            file no longer matches it, nothing is written

    Returns:
        The backup written, or None when ``new_content`` equals the current
        content and nothing needed writing.

    Raises:
        StaleSuggestionError: the file changed since ``expected_content``
        BackupFailureError: the backup failed; the file is untouched
        PatchError: the replacement write failed; the file is untouched
    """
    file_path = Path(file_path)
    try:
        current = _read(file_path)
    except (OSError, UnicodeDecodeError) as e:
        raise BackupFailureError(file_path, f"cannot read current content: {e}")

    if expected_content is not None and current != expected_content:
        raise StaleSuggestionError(str(file_path), MISMATCH, file_path)

    if new_content == current:
        logger.debug("No changes for %s, nothing written", file_path)
        return None

    ref = write_backup(file_path, current, backup_dir)
    try:
        _replace_atomically(file_path, new_content)
    except PatchError as e:
        e.backup_path = ref.path
        e.details["backup"] = str(ref.path)
        raise
    logger.info("Rewrote %s (backup: %s)", file_path, ref.path)
    return ref


def list_backups(
    backup_dir: Path, name: Optional[str] = None, source: Optional[Path] = None
) -> List[BackupRef]:
    """Backups in ``backup_dir``, newest first.

    Args:
        backup_dir: Directory holding the backups
        name: Only backups of files with this base name
        source: Only backups taken from this file path
    """
    if not backup_dir.is_dir():
        return []
    if source is not None:
        source = Path(source).resolve()
    found = []
    for entry in backup_dir.iterdir():
        match = _BACKUP_RE.match(entry.name)
        if not match or (name is not None and match.group("name") != name):
            continue
        origin = read_backup_source(entry)
        if source is not None and origin != source:
            continue
        created = datetime.strptime(match.group("stamp"), _STAMP_FORMAT)
        ref = BackupRef(path=entry, original_name=match.group("name"), created_at=created, source=origin)
        found.append(((created, int(match.group("seq") or 0)), ref))
    found.sort(key=lambda item: item[0], reverse=True)
    return [ref for _, ref in found]


def restore_backup(backup_path: Path, target: Optional[Path], backup_dir: Path) -> Optional[BackupRef]:
    """Put a backup's content back into ``target``.

    ``target`` defaults to the file the backup was taken from. The current
    content of ``target`` is itself backed up first.
    """
    if target is None:
        target = read_backup_source(backup_path)
        if target is None:
            raise PatchError(
                f"Backup {backup_path} does not record its source file; give a target",
                details={"filepath": str(backup_path)},
            )
    target = Path(target)
    try:
        content = _read(backup_path)
    except (OSError, UnicodeDecodeError) as e:
        raise PatchError(
            f"Cannot read backup {backup_path}", details={"filepath": str(backup_path), "reason": str(e)}
        )
    if not target.exists():
        target.parent.mkdir(parents=True, exist_ok=True)
        with open(target, "w", encoding="utf-8", newline="") as f:
            f.write(content)
        logger.info("Restored %s from %s", target, backup_path)
        return None
    ref = commit(target, content, backup_dir)
    logger.info("Restored %s from %s", target, backup_path)
    return ref
