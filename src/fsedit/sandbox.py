"""Path sandboxing and exclusion-pattern enforcement.

Every path that reaches the filesystem goes through ``PathSandbox.resolve``
first. Resolution confines the path to the project root (lexically and
after symlink resolution) and ``check_excluded`` denies anything matching
the merged exclusion patterns.

Security checks performed by ``resolve``:
1. No ``..`` components
2. Absolute paths must already lie under the project root
3. The normalized path stays under the root
4. The real path (symlinks resolved) stays under the root

Patterns use gitignore-style glob semantics via ``pathspec``: ``*`` matches
within a path segment, ``**`` matches across segments, a pattern without a
slash matches a name at any depth, and a trailing ``/`` matches directories
only. Matching is case-sensitive.
"""

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable

import pathspec

from fsedit.exceptions import PathEscapeError, PathRestrictedError

logger = logging.getLogger(__name__)

# Logical paths that address the project root itself
ROOT_ALIASES = {"", "/", ".", "./"}


@dataclass(frozen=True)
class ExclusionPatternSet:
    """Ordered, immutable set of deny patterns.

    Built by merging the global list with the project's own list; any
    matching pattern denies access. There is no allow-list override.

    Example:
        >>> patterns = ExclusionPatternSet.merge([".git", ".env"], ["dist/**"])
        >>> patterns.match("dist/app.js")
        'dist/**'
        >>> patterns.match("src/app.js") is None
        True
    """

    patterns: tuple[str, ...] = ()
    _specs: tuple[tuple[str, pathspec.GitIgnoreSpec], ...] = field(
        init=False, repr=False, compare=False, default=()
    )

    def __post_init__(self) -> None:
        cleaned = tuple(p.strip() for p in self.patterns if p and p.strip())
        object.__setattr__(self, "patterns", cleaned)
        specs = tuple(
            (pattern, pathspec.GitIgnoreSpec.from_lines([pattern]))
            for pattern in cleaned
        )
        object.__setattr__(self, "_specs", specs)

    @classmethod
    def merge(cls, *sources: Iterable[str] | None) -> "ExclusionPatternSet":
        """Merge pattern sources in order, dropping blanks and duplicates."""
        merged: list[str] = []
        for source in sources:
            if source is None:
                continue
            if isinstance(source, ExclusionPatternSet):
                source = source.patterns
            for pattern in source:
                pattern = pattern.strip() if pattern else ""
                if pattern and pattern not in merged:
                    merged.append(pattern)
        return cls(tuple(merged))

    def extend(self, extra: Iterable[str] | None) -> "ExclusionPatternSet":
        """Return a new set with per-call patterns appended."""
        return ExclusionPatternSet.merge(self.patterns, extra)

    def match(self, relative_path: str, is_dir: bool = False) -> str | None:
        """Return the first pattern matching a project-relative path, or None.

        Args:
            relative_path: POSIX-style path relative to the project root
            is_dir: Whether the path names a directory (enables ``dir/`` patterns)
        """
        if relative_path in ROOT_ALIASES:
            return None
        for pattern, spec in self._specs:
            if spec.match_file(relative_path):
                return pattern
            if is_dir and pattern.endswith("/") and spec.match_file(relative_path + "/"):
                return pattern
        return None

    def __bool__(self) -> bool:
        return bool(self.patterns)

    def __iter__(self):
        return iter(self.patterns)

    def __len__(self) -> int:
        return len(self.patterns)


@dataclass(frozen=True)
class SafePath:
    """A path proven to lie inside the project root.

    Created fresh for every operation and never cached, because the
    filesystem may change between calls.

    Attributes:
        absolute: Real absolute path (symlinks resolved)
        relative: POSIX path of ``absolute`` relative to the root ("." for the root)
        logical: POSIX path as addressed by the caller, relative to the root
        lexical: Normalized absolute path as addressed (symlinks not resolved)
    """

    absolute: Path
    relative: str
    logical: str
    lexical: Path

    @property
    def is_root(self) -> bool:
        return self.relative == "."

    def __fspath__(self) -> str:
        return str(self.absolute)

    def __str__(self) -> str:
        return self.relative


class PathSandbox:
    """Confines caller-supplied paths to a single project root.

    Example:
        >>> sandbox = PathSandbox("/home/user/project", [".git", ".env"])
        >>> safe = sandbox.resolve("src/main.py")
        >>> sandbox.check_excluded(safe)
        >>> safe.relative
        'src/main.py'
    """

    def __init__(
        self,
        project_root: str | os.PathLike,
        excluded_patterns: Iterable[str] | ExclusionPatternSet | None = None,
        logger: logging.Logger | None = None,
    ):
        """Initialize PathSandbox.

        Args:
            project_root: Directory the session is confined to
            excluded_patterns: Merged global and project deny patterns
            logger: Optional logger (defaults to the module logger)
        """
        self.project_root = Path(project_root).expanduser().resolve()
        if isinstance(excluded_patterns, ExclusionPatternSet):
            self.patterns = excluded_patterns
        else:
            self.patterns = ExclusionPatternSet.merge(excluded_patterns)
        self.logger = logger or logging.getLogger(__name__)

    def resolve(self, input_path: str | os.PathLike) -> SafePath:
        """Resolve a caller-supplied path to a SafePath inside the root.

        Args:
            input_path: Relative path, "/" for the root, or an absolute path
                that already lies under the root

        Returns:
            SafePath for the target (which need not exist yet)

        Raises:
            PathEscapeError: If the path traverses or links outside the root
        """
        raw = os.fspath(input_path).strip()
        root = self.project_root

        if "\x00" in raw:
            self.logger.warning(f"Path with null byte rejected: {raw!r}")
            raise PathEscapeError(raw, "Path contains a null byte")

        if raw in ROOT_ALIASES:
            return SafePath(absolute=root, relative=".", logical=".", lexical=root)

        requested = Path(raw)
        if ".." in requested.parts:
            self.logger.warning(f"Path traversal attempt detected: {raw}")
            raise PathEscapeError(
                raw, f"Path contains '..' component: {raw}. Path traversal is not allowed."
            )

        if requested.is_absolute():
            candidate = Path(os.path.normpath(requested))
        else:
            candidate = Path(os.path.normpath(root / requested))

        if not _is_within(candidate, root):
            self.logger.warning(f"Path outside project root: {raw}")
            raise PathEscapeError(raw)

        try:
            real = candidate.resolve()
        except (OSError, RuntimeError, ValueError) as e:
            # Symlink loops and unencodable names end up here
            self.logger.warning(f"Failed to resolve path {raw}: {e}")
            raise PathEscapeError(raw, f"Failed to resolve path: {raw}") from e

        if not _is_within(real, root):
            self.logger.warning(f"Symlink target outside project root: {raw}")
            raise PathEscapeError(raw, f"Symlink target is outside the project root: {raw}")

        safe = SafePath(
            absolute=real,
            relative=_relative_posix(real, root),
            logical=_relative_posix(candidate, root),
            lexical=candidate,
        )
        self.logger.debug(f"Path resolved: {raw} -> {safe.relative}")
        return safe

    def is_excluded(
        self,
        path: SafePath | str | os.PathLike,
        patterns: ExclusionPatternSet | Iterable[str] | None = None,
        is_dir: bool | None = None,
    ) -> bool:
        """Return True if the path matches any exclusion pattern."""
        return self._match(path, patterns, is_dir) is not None

    def check_excluded(
        self,
        path: SafePath | str | os.PathLike,
        patterns: ExclusionPatternSet | Iterable[str] | None = None,
        is_dir: bool | None = None,
    ) -> None:
        """Guard used at the top of every reading or mutating operation.

        Raises:
            PathRestrictedError: If the path matches an exclusion pattern
        """
        matched = self._match(path, patterns, is_dir)
        if matched is not None:
            shown = path.logical if isinstance(path, SafePath) else self.to_relative(path)
            self.logger.warning(f"Restricted path denied: {shown} (pattern {matched!r})")
            raise PathRestrictedError(shown, matched)

    def resolve_allowed(
        self,
        input_path: str | os.PathLike,
        patterns: ExclusionPatternSet | Iterable[str] | None = None,
    ) -> SafePath:
        """Resolve a path and run the exclusion guard in one step."""
        safe = self.resolve(input_path)
        self.check_excluded(safe, patterns)
        return safe

    def to_relative(self, path: SafePath | str | os.PathLike) -> str:
        """Convert a path inside the root to its project-relative POSIX form."""
        if isinstance(path, SafePath):
            return path.relative
        candidate = Path(path)
        if not candidate.is_absolute():
            return candidate.as_posix() or "."
        return _relative_posix(Path(os.path.normpath(candidate)), self.project_root)

    def redact(self, text: str) -> str:
        """Rewrite absolute root paths inside free text to relative form."""
        return redact_root(text, self.project_root)

    def _match(self, path, patterns, is_dir) -> str | None:
        active = self._active_patterns(patterns)
        if not active:
            return None
        if isinstance(path, SafePath):
            if is_dir is None:
                is_dir = path.absolute.is_dir()
            candidates = dict.fromkeys([path.logical, path.relative])
        else:
            candidate = Path(path)
            if is_dir is None:
                absolute = candidate if candidate.is_absolute() else self.project_root / candidate
                is_dir = absolute.is_dir()
            candidates = {self.to_relative(path): None}
        for relative in candidates:
            matched = active.match(relative, is_dir=bool(is_dir))
            if matched is not None:
                return matched
        return None

    def _active_patterns(self, patterns) -> ExclusionPatternSet:
        if patterns is None:
            return self.patterns
        if isinstance(patterns, ExclusionPatternSet):
            return patterns
        return self.patterns.extend(patterns)


def _is_within(path: Path, root: Path) -> bool:
    return path == root or path.is_relative_to(root)


def _relative_posix(path: Path, root: Path) -> str:
    if path == root:
        return "."
    return path.relative_to(root).as_posix()


def redact_root(text: str, project_root: str | os.PathLike) -> str:
    """Replace occurrences of the absolute project root in text.

    Only whole path prefixes are rewritten: the root must be followed by a
    separator or a non-path character, so ``/srv/app`` does not rewrite
    ``/srv/application``. ``/srv/app/src/x.py`` becomes ``src/x.py`` and a
    bare ``/srv/app`` becomes ``.``.

    This is a fallback for free-form text such as OS error messages;
    structured results carry ``SafePath.relative`` instead.
    """
    root = os.fspath(project_root).rstrip("/\\")
    if not root or not text:
        return text
    pattern = re.compile(re.escape(root) + r"(?:[/\\](?=[^\s/\\])|(?![\w.\-/\\]))")

    def _replace(match: re.Match) -> str:
        return "" if match.group(0) != root else "."

    return pattern.sub(_replace, text)
