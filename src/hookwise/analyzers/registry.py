"""Analyzer discovery and resolution.

An analyzer is found either in ``analyzer_dir`` as ``<name>-hook.sh``,
``<name>-hook.py`` or an executable ``<name>-hook``, or via an explicit
``commands`` entry. The configured ``analyzers`` list fixes both which
analyzers run and their priority.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Dict, List, Sequence

from ..config import EnhancerConfig
from ..exceptions import UnknownAnalyzerError
from ..logging_config import get_logger
from .invoker import ProcessAnalyzer

logger = get_logger(__name__)

HOOK_SUFFIX = "-hook"

_INTERPRETERS = {
    ".sh": ["bash"],
    ".bash": ["bash"],
    ".py": [sys.executable],
}


def _command_for(script: Path) -> List[str] | None:
    interpreter = _INTERPRETERS.get(script.suffix)
    if interpreter is not None:
        return interpreter + [str(script)]
    if script.suffix == "" and os.access(script, os.X_OK):
        return [str(script)]
    return None


def discover_analyzers(analyzer_dir: Path) -> Dict[str, List[str]]:
    """Map analyzer name -> argv for every hook script in ``analyzer_dir``."""
    found: Dict[str, List[str]] = {}
    if not analyzer_dir.is_dir():
        logger.debug("Analyzer directory %s does not exist", analyzer_dir)
        return found

    for script in sorted(analyzer_dir.iterdir()):
        if not script.is_file() or not script.stem.endswith(HOOK_SUFFIX):
            continue
        command = _command_for(script)
        if command is None:
            continue
        name = script.stem[: -len(HOOK_SUFFIX)]
        found.setdefault(name, command)
    return found


def resolve_analyzers(config: EnhancerConfig, root_dir: Path, cwd: Path | None = None) -> List[ProcessAnalyzer]:
    """Build the analyzers for a run, highest priority first.

    Raises:
        UnknownAnalyzerError: if a configured name has no script or command
    """
    analyzer_dir = Path(config.analyzer_dir)
    if not analyzer_dir.is_absolute():
        analyzer_dir = root_dir / analyzer_dir

    available: Dict[str, List[str]] = discover_analyzers(analyzer_dir)
    available.update({name: list(argv) for name, argv in config.commands.items()})

    names: Sequence[str] = config.analyzers or sorted(available)
    unknown = [n for n in names if n not in available]
    if unknown:
        raise UnknownAnalyzerError(unknown, sorted(available))

    if not names:
        logger.warning("No analyzers configured or found in %s", analyzer_dir)

    return [ProcessAnalyzer(name, available[name], cwd=cwd or root_dir) for name in names]
