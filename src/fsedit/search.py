"""Pattern search in a single file or across the project tree.

Patterns are matched per line (never across line boundaries) as regular
expressions by default, or as literal substrings. Every match carries its
1-based line number, the line text, and up to ``context`` lines on each
side, clipped at the file boundaries.

Project-wide search walks the tree in a fixed order (directories before
files at each level, names sorted) and skips excluded, binary and
unreadable files. Results are also sorted explicitly, so the output does
not depend on filesystem enumeration order.
"""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path

from pydantic import BaseModel, Field, field_validator

from fsedit.documents import BINARY_SNIFF_BYTES, LineDocument
from fsedit.exceptions import (
    FileOperationError,
    InvalidPatternError,
    MissingDirectoryError,
    MissingFileError,
)
from fsedit.sandbox import PathSandbox, SafePath
from fsedit.walk import iter_files

logger = logging.getLogger(__name__)

DEFAULT_PROJECT_MAX_RESULTS = 100
DEFAULT_MAX_FILE_BYTES = 10_485_760  # 10MB


class GrepOptions(BaseModel):
    """Options for searching a single file."""

    regex: bool = Field(default=True, description="Treat the pattern as a regular expression")
    case_sensitive: bool = Field(default=True, description="Case-sensitive matching")
    context: int = Field(default=0, ge=0, description="Context lines on each side of a match")
    max_results: int | None = Field(
        default=None, ge=1, description="Stop after this many matches (None for no limit)"
    )
    exclude: list[str] = Field(
        default_factory=list, description="Extra exclusion patterns for this call only"
    )


class ProjectGrepOptions(GrepOptions):
    """Options for searching every eligible file under a directory."""

    max_results: int | None = Field(
        default=DEFAULT_PROJECT_MAX_RESULTS,
        ge=1,
        description="Stop after this many matches across all files",
    )
    file_types: list[str] = Field(
        default_factory=list,
        description="File extensions to search (e.g. ['.py', 'ts']); empty for all",
    )
    max_file_bytes: int = Field(
        default=DEFAULT_MAX_FILE_BYTES, ge=1, description="Skip files larger than this"
    )

    @field_validator("file_types")
    @classmethod
    def normalize_file_types(cls, v: list[str]) -> list[str]:
        """Accept 'py', '.py' and '*.py' alike."""
        normalized = []
        for ext in v:
            ext = ext.strip().lstrip("*")
            if not ext:
                continue
            if not ext.startswith("."):
                ext = f".{ext}"
            normalized.append(ext)
        return normalized


@dataclass(frozen=True)
class ContextLine:
    line_number: int
    text: str

    def to_dict(self) -> dict:
        return {"line_number": self.line_number, "text": self.text}


@dataclass(frozen=True)
class SearchMatch:
    """One matching line.

    Attributes:
        path: Project-relative path of the file
        line_number: 1-based line number of the match
        line: Full text of the matching line
        match_start: Offset of the first match within the line
        match_end: End offset of the first match within the line
        groups: Capture groups of the first match (regex mode only)
        before: Context lines preceding the match
        after: Context lines following the match
    """

    path: str
    line_number: int
    line: str
    match_start: int
    match_end: int
    groups: tuple[str | None, ...] = ()
    before: tuple[ContextLine, ...] = ()
    after: tuple[ContextLine, ...] = ()

    def to_dict(self) -> dict:
        return {
            "path": self.path,
            "line_number": self.line_number,
            "line": self.line,
            "match_start": self.match_start,
            "match_end": self.match_end,
            "groups": list(self.groups),
            "before": [c.to_dict() for c in self.before],
            "after": [c.to_dict() for c in self.after],
        }


@dataclass
class FileGrepResult:
    path: str
    pattern: str
    matches: list[SearchMatch] = field(default_factory=list)
    truncated: bool = False

    def to_dict(self) -> dict:
        return {
            "path": self.path,
            "pattern": self.pattern,
            "matches": [m.to_dict() for m in self.matches],
            "truncated": self.truncated,
        }


@dataclass
class ProjectGrepResult:
    path: str
    pattern: str
    results: list[SearchMatch] = field(default_factory=list)
    files_searched: int = 0
    files_matched: int = 0
    files_skipped: int = 0
    truncated: bool = False

    def to_dict(self) -> dict:
        return {
            "path": self.path,
            "pattern": self.pattern,
            "results": [m.to_dict() for m in self.results],
            "files_searched": self.files_searched,
            "files_matched": self.files_matched,
            "files_skipped": self.files_skipped,
            "truncated": self.truncated,
        }


def compile_pattern(pattern: str, regex: bool = True, case_sensitive: bool = True) -> re.Pattern:
    """Compile a search pattern.

    Raises:
        InvalidPatternError: If the pattern is empty or not a valid regex
    """
    if not pattern:
        raise InvalidPatternError(pattern, "pattern must not be empty")
    flags = 0 if case_sensitive else re.IGNORECASE
    source = pattern if regex else re.escape(pattern)
    try:
        return re.compile(source, flags)
    except re.error as e:
        raise InvalidPatternError(pattern, str(e)) from e


def path_sort_key(relative_path: str) -> tuple:
    """Sort key placing directories before files at every level.

    Example:
        >>> sorted(["b.txt", "a/z.txt", "a/b/c.txt"], key=path_sort_key)
        ['a/b/c.txt', 'a/z.txt', 'b.txt']
    """
    parts = relative_path.split("/")
    return tuple((0, part) for part in parts[:-1]) + ((1, parts[-1]),)


def scan_document(
    document: LineDocument,
    compiled: re.Pattern,
    relative_path: str,
    context: int = 0,
    limit: int | None = None,
) -> list[SearchMatch]:
    """Return matches in a document, in ascending line order."""
    matches: list[SearchMatch] = []

    for index, text in enumerate(document.lines):
        if limit is not None and len(matches) >= limit:
            break
        found = compiled.search(text)
        if not found:
            continue
        number = index + 1
        before = after = ()
        if context:
            before = _context(document, number - context, number - 1)
            after = _context(document, number + 1, number + context)
        matches.append(
            SearchMatch(
                path=relative_path,
                line_number=number,
                line=text,
                match_start=found.start(),
                match_end=found.end(),
                groups=found.groups() if compiled.groups else (),
                before=before,
                after=after,
            )
        )

    if matches:
        logger.debug(f"{len(matches)} match(es) in {relative_path}")
    return matches


class SearchEngine:
    """Runs per-file and project-wide searches inside a sandbox.

    Example:
        >>> engine = SearchEngine(sandbox)
        >>> result = engine.project_grep(sandbox.resolve("/"), "TODO")
        >>> for match in result.results:
        ...     print(f"{match.path}:{match.line_number}: {match.line}")
    """

    def __init__(self, sandbox: PathSandbox, logger: logging.Logger | None = None):
        """Initialize SearchEngine.

        Args:
            sandbox: Sandbox providing the project root and exclusion patterns
            logger: Optional logger (defaults to the module logger)
        """
        self.sandbox = sandbox
        self.logger = logger or logging.getLogger(__name__)

    def file_grep(
        self, safe_path: SafePath, pattern: str, options: GrepOptions | dict | None = None
    ) -> FileGrepResult:
        """Search one file.

        The caller is expected to have run the exclusion guard; per-call
        ``exclude`` patterns are checked here as well.

        Raises:
            PathRestrictedError: If the path matches a per-call exclusion
            MissingFileError: If the file does not exist
            InvalidPatternError: If the pattern cannot be compiled
            FileOperationError: If the file is binary, not UTF-8 or unreadable
        """
        options = coerce_options(options, GrepOptions)
        if options.exclude:
            self.sandbox.check_excluded(safe_path, self.sandbox.patterns.extend(options.exclude))
        compiled = compile_pattern(pattern, options.regex, options.case_sensitive)

        if not safe_path.absolute.is_file():
            raise MissingFileError(safe_path.logical)

        document = self._load(safe_path.absolute, safe_path.logical, strict=True)
        limit = options.max_results
        matches = scan_document(document, compiled, safe_path.logical, options.context, limit)
        truncated = limit is not None and len(matches) >= limit and _has_more(
            document, compiled, matches
        )
        return FileGrepResult(
            path=safe_path.logical, pattern=pattern, matches=matches, truncated=truncated
        )

    def project_grep(
        self,
        safe_root: SafePath,
        pattern: str,
        options: ProjectGrepOptions | dict | None = None,
    ) -> ProjectGrepResult:
        """Search every eligible file under a directory.

        Excluded files (global, project and per-call patterns) are skipped
        silently, as are binary, oversized and unreadable files.

        Raises:
            MissingDirectoryError: If the root is not a directory
            InvalidPatternError: If the pattern cannot be compiled
        """
        options = coerce_options(options, ProjectGrepOptions)
        compiled = compile_pattern(pattern, options.regex, options.case_sensitive)

        if not safe_root.absolute.is_dir():
            raise MissingDirectoryError(safe_root.logical)

        patterns = self.sandbox.patterns.extend(options.exclude)
        result = ProjectGrepResult(path=safe_root.logical, pattern=pattern)
        limit = options.max_results

        for file_path, relative in iter_files(
            self.sandbox, safe_root.absolute, patterns, self.logger
        ):
            if options.file_types and file_path.suffix not in options.file_types:
                continue
            if limit is not None and len(result.results) >= limit:
                # Cap reached; truncated only if a later file also matches
                if self._file_matches(file_path, relative, compiled, options.max_file_bytes):
                    result.truncated = True
                    break
                continue

            try:
                if file_path.stat().st_size > options.max_file_bytes:
                    self.logger.debug(f"Skipping oversized file: {relative}")
                    result.files_skipped += 1
                    continue
                document = self._load(file_path, relative, strict=False)
            except (OSError, UnicodeDecodeError) as e:
                self.logger.debug(f"Skipping unreadable file {relative}: {e}")
                result.files_skipped += 1
                continue
            if document is None:
                result.files_skipped += 1
                continue

            result.files_searched += 1
            remaining = None if limit is None else limit - len(result.results)
            matches = scan_document(document, compiled, relative, options.context, remaining)
            if matches:
                result.files_matched += 1
                result.results.extend(matches)
                if remaining is not None and len(matches) >= remaining and _has_more(
                    document, compiled, matches
                ):
                    result.truncated = True
                    break

        result.results.sort(key=lambda m: (path_sort_key(m.path), m.line_number))
        self.logger.debug(
            f"Project grep for {pattern!r}: {len(result.results)} match(es) "
            f"in {result.files_matched} of {result.files_searched} file(s)"
        )
        return result

    def _load(self, path: Path, relative: str, strict: bool) -> LineDocument | None:
        """Read a text file; binary content returns None, or raises when strict."""
        try:
            with open(path, "rb") as f:
                data = f.read()
        except OSError as e:
            if strict:
                raise FileOperationError(
                    relative, f"Error reading file {relative}: {e.strerror or e}", e
                ) from e
            raise

        if b"\x00" in data[:BINARY_SNIFF_BYTES]:
            if strict:
                raise FileOperationError(
                    relative, f"File appears to be binary (contains null bytes): {relative}"
                )
            return None

        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError as e:
            if strict:
                raise FileOperationError(
                    relative, f"File is not valid UTF-8 text: {relative}", e
                ) from e
            return None
        return LineDocument.from_text(text)

    def _file_matches(
        self, path: Path, relative: str, compiled: re.Pattern, max_file_bytes: int
    ) -> bool:
        try:
            if path.stat().st_size > max_file_bytes:
                return False
            document = self._load(path, relative, strict=False)
        except (OSError, UnicodeDecodeError):
            return False
        return document is not None and any(compiled.search(text) for text in document.lines)


def _has_more(document: LineDocument, compiled: re.Pattern, matches: list[SearchMatch]) -> bool:
    last = matches[-1].line_number
    return any(compiled.search(text) for text in document.lines[last:])


def coerce_options(options, model):
    if options is None:
        return model()
    if isinstance(options, model):
        return options
    if isinstance(options, BaseModel):
        return model(**options.model_dump())
    return model(**options)


def _context(document: LineDocument, start: int, end: int) -> tuple[ContextLine, ...]:
    return tuple(ContextLine(n, text) for n, text in document.slice(start, end))
