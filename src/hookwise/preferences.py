"""Persisted operator preferences.

A flat ``key=value`` file, one setting per line. Keys are EnhancerConfig
field names; the framework-era ``DEFAULT_MODE`` key is read as ``mode``.
Writes are serialized across threads and, on POSIX, across processes.
Last writer wins.
"""

from __future__ import annotations

import os
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, Optional

from .logging_config import get_logger

if os.name == "posix":
    import fcntl

logger = get_logger(__name__)

# Keys written by the shell hook framework's interactive-hook.conf
_LEGACY_KEYS = {
    "DEFAULT_MODE": "mode",
    "INPUT_TIMEOUT": "timeout_seconds",
    "BACKUP_DIR": "backup_dir",
    "LOG_FILE": "log_file",
}

# Abbreviations accepted wherever a mode is typed at a prompt
MODE_ALIASES = {"i": "interactive", "a": "auto", "p": "preview", "s": "skip"}


class PreferenceStore:
    """Key/value preferences backed by a single file."""

    _thread_lock = threading.Lock()

    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self) -> Dict[str, str]:
        """Read all preferences. A missing file is an empty store."""
        if not self.path.exists():
            return {}
        result: Dict[str, str] = {}
        for lineno, raw in enumerate(self.path.read_text(encoding="utf-8").splitlines(), 1):
            line = raw.strip()
            if not line or line.startswith("#"):
                continue
            key, sep, value = line.partition("=")
            if not sep:
                logger.warning("Ignoring malformed preference line %d in %s", lineno, self.path)
                continue
            key = _LEGACY_KEYS.get(key.strip(), key.strip())
            value = value.strip().strip('"')
            if key == "mode":
                value = MODE_ALIASES.get(value.lower(), value)
            result[key] = value
        return result

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self.load().get(key, default)

    def set(self, key: str, value: str) -> None:
        with self._locked():
            prefs = self.load()
            prefs[key] = str(value)
            self._write(prefs)
        logger.info("Saved preference: %s=%s", key, value)

    def unset(self, key: str) -> bool:
        with self._locked():
            prefs = self.load()
            if key not in prefs:
                return False
            del prefs[key]
            self._write(prefs)
        logger.info("Removed preference: %s", key)
        return True

    def clear(self) -> None:
        with self._locked():
            if self.path.exists():
                self.path.unlink()
        logger.info("Cleared preferences at %s", self.path)

    @contextmanager
    def _locked(self) -> Iterator[None]:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self._thread_lock:
            if os.name != "posix":
                yield
                return
            lock_path = self.path.with_name(self.path.name + ".lock")
            with open(lock_path, "a") as lock_file:
                fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX)
                try:
                    yield
                finally:
                    fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)

    def _write(self, prefs: Dict[str, str]) -> None:
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        lines = [f"{key}={value}" for key, value in sorted(prefs.items())]
        tmp_path.write_text("\n".join(lines) + "\n" if lines else "", encoding="utf-8")
        os.replace(tmp_path, self.path)
