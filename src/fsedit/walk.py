"""Deterministic, exclusion-aware file walk shared by search and listing."""

import logging
import os
from collections.abc import Iterator
from pathlib import Path

from fsedit.exceptions import PathEscapeError
from fsedit.sandbox import ExclusionPatternSet, PathSandbox

logger = logging.getLogger(__name__)


def iter_files(
    sandbox: PathSandbox,
    directory: Path,
    patterns: ExclusionPatternSet,
    log: logging.Logger | None = None,
) -> Iterator[tuple[Path, str]]:
    """Yield ``(path, relative)`` for every included file under a directory.

    Order is fixed: at each level subdirectories come first, then files,
    each sorted by name. Excluded directories are pruned, symlinked
    directories are not followed, and symlinked files are only yielded
    when their target stays inside the root and is not excluded itself.
    """
    log = log or logger
    try:
        with os.scandir(directory) as it:
            entries = sorted(it, key=lambda e: e.name)
    except OSError as e:
        log.warning(f"Cannot list directory {sandbox.to_relative(directory)}: {e.strerror}")
        return

    dirs, files = [], []
    for entry in entries:
        try:
            if entry.is_dir(follow_symlinks=False):
                dirs.append(entry)
            elif entry.is_file():
                files.append((entry, entry.is_symlink()))
        except OSError:
            continue

    for entry in dirs:
        relative = sandbox.to_relative(entry.path)
        if patterns.match(relative, is_dir=True) is not None:
            log.debug(f"Pruned excluded directory: {relative}")
            continue
        yield from iter_files(sandbox, Path(entry.path), patterns, log)

    for entry, is_link in files:
        relative = sandbox.to_relative(entry.path)
        if patterns.match(relative) is not None:
            continue
        if is_link:
            try:
                target = sandbox.resolve(relative)
            except PathEscapeError:
                continue
            if patterns.match(target.relative) is not None:
                continue
        yield Path(entry.path), relative
