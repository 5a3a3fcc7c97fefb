"""Shared CLI helpers."""

from pathlib import Path
from typing import Optional

from rich.console import Console

from ..config import EnhancerConfig, load_config
from ..preferences import PreferenceStore

console = Console()
err_console = Console(stderr=True)


def resolve_path(root: Path, value: str) -> Path:
    path = Path(value).expanduser()
    return path if path.is_absolute() else root / path


def preference_store(root: Path, config_file: Optional[Path] = None) -> PreferenceStore:
    """The preference store named by file/env config (preferences can't move it)."""
    base = load_config(config_file=config_file, root_dir=root)
    return PreferenceStore(resolve_path(root, base.preferences_file))


def resolve_config(root: Path, config_file: Optional[Path] = None, **overrides) -> EnhancerConfig:
    """Build settings from config files, saved preferences and CLI options."""
    store = preference_store(root, config_file)
    return load_config(
        config_file=config_file,
        preferences=store.load(),
        root_dir=root,
        **overrides,
    )


def find_root(repo: Optional[Path]) -> Path:
    """Repository root for ``repo`` (default cwd), or the directory itself outside git."""
    from ..candidates import repo_root
    from ..exceptions import CoordinatorIOError

    start = Path(repo) if repo else Path.cwd()
    try:
        return repo_root(start)
    except CoordinatorIOError:
        return start.resolve()
