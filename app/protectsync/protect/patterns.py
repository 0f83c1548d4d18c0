"""Regex pattern sets and the working-tree path matcher.

Patterns are matched against repository-relative paths with forward-slash
separators. They are never anchored implicitly: a pattern of ``docs``
matches ``tutorials/docs-old`` too, so configuration anchors with ``^``.
"""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from protectsync.core.config import split_patterns
from protectsync.core.errors import PatternSyntaxError

logger = logging.getLogger(__name__)


@dataclass
class PatternSet:
    """Ordered, deduplicated regular expressions with lazy compilation.

    The compiled cache is rebuilt on the first read after :meth:`add`
    changed the source list, so readers always see compiled forms in sync
    with :attr:`patterns`.

    Attributes:
        patterns: Source strings in insertion order.
    """

    patterns: list[str] = field(default_factory=list)
    _compiled: list[re.Pattern[str]] | None = field(
        default=None, init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        initial, self.patterns = self.patterns, []
        self.add(*initial)

    @classmethod
    def from_newline_separated(cls, text: str) -> PatternSet:
        """Build a set from a newline-separated string of patterns."""
        return cls(split_patterns(text))

    def add(self, *patterns: str) -> None:
        """Append patterns, skipping blanks and ones already present."""
        for pattern in patterns:
            if pattern and pattern not in self.patterns:
                self.patterns.append(pattern)
                self._compiled = None

    @property
    def compiled(self) -> list[re.Pattern[str]]:
        """Compiled forms, compiling on first access after a change.

        Raises:
            PatternSyntaxError: If any pattern is invalid. No partial
                set is cached in that case.
        """
        if self._compiled is None:
            compiled: list[re.Pattern[str]] = []
            for pattern in self.patterns:
                try:
                    compiled.append(re.compile(pattern))
                except re.error as e:
                    raise PatternSyntaxError(pattern, str(e)) from e
            self._compiled = compiled
        return self._compiled

    def matches(self, relative_path: str) -> bool:
        """Check whether a repository-relative path matches any pattern."""
        normalized = relative_path.replace(os.sep, "/")
        return any(p.search(normalized) for p in self.compiled)

    def __len__(self) -> int:
        return len(self.patterns)

    def __bool__(self) -> bool:
        return bool(self.patterns)


def compile_patterns(patterns: Iterable[str]) -> PatternSet:
    """Build and eagerly compile a pattern set.

    Args:
        patterns: Regular expression source strings.

    Returns:
        PatternSet with its compiled cache populated.

    Raises:
        PatternSyntaxError: If any pattern does not compile.
    """
    pattern_set = PatternSet(list(patterns))
    _ = pattern_set.compiled
    return pattern_set


@dataclass(frozen=True, slots=True)
class MatchedPath:
    """A filesystem entry that matched a pattern set.

    Attributes:
        path: Absolute filesystem path.
        relative_path: Root-relative path with forward slashes.
        is_dir: Whether the entry is a directory.
    """

    path: Path
    relative_path: str
    is_dir: bool = False


def find_matching_paths(
    root: Path,
    pattern_set: PatternSet,
    *,
    include_files: bool = True,
    include_dirs: bool = True,
) -> tuple[MatchedPath, ...]:
    """Walk ``root`` once and collect entries matching ``pattern_set``.

    Entries whose name starts with ``.`` are skipped, and hidden
    directories are pruned so nothing below them is visited. The root
    itself is never reported. Symlinks are reported as non-directory
    entries and never followed.

    Args:
        root: Directory to walk, usually the working tree root.
        pattern_set: Patterns to test each relative path against.
        include_files: Report matching non-directory entries.
        include_dirs: Report matching directories.

    Returns:
        Matched entries sorted by absolute path.

    Raises:
        PatternSyntaxError: If the pattern set does not compile.
        OSError: If ``root`` cannot be read.
    """
    if not include_files and not include_dirs:
        include_files = include_dirs = True

    compiled = pattern_set.compiled
    matched: list[MatchedPath] = []
    checked = 0

    def _on_error(error: OSError) -> None:
        if Path(error.filename or "") == root:
            raise error
        logger.warning("Cannot read %s: %s", error.filename, error.strerror)

    for dirpath, dirnames, filenames in os.walk(root, onerror=_on_error):
        current = Path(dirpath)
        visible = sorted(d for d in dirnames if not d.startswith("."))
        # os.walk lists symlinks to directories as dirnames
        links = [d for d in visible if (current / d).is_symlink()]
        # Prune in place so os.walk does not descend into hidden directories
        dirnames[:] = [d for d in visible if d not in links]

        entries: list[tuple[str, bool]] = []
        if include_dirs:
            entries.extend((d, True) for d in dirnames)
        if include_files:
            entries.extend((f, False) for f in filenames if not f.startswith("."))
            entries.extend((d, False) for d in links)

        for name, is_dir in entries:
            checked += 1
            absolute = current / name
            relative = absolute.relative_to(root).as_posix()
            for pattern in compiled:
                if pattern.search(relative):
                    matched.append(MatchedPath(absolute, relative, is_dir))
                    break

    matched.sort(key=lambda m: str(m.path))
    logger.debug("Matched %d of %d checked paths under %s", len(matched), checked, root)
    return tuple(matched)


def covering_roots(matched: Iterable[MatchedPath]) -> list[str]:
    """Reduce matched paths to those not nested under another match.

    ``tutorials`` and ``tutorials/readme.md`` collapse to ``tutorials``, so
    each protected subtree is handled once.

    Args:
        matched: Matched entries.

    Returns:
        Sorted relative paths with no entry below another.
    """
    roots: list[str] = []
    for relative in sorted({m.relative_path for m in matched}):
        if any(relative.startswith(root + "/") for root in roots):
            continue
        roots.append(relative)
    return roots
