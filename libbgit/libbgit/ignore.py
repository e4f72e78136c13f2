"""Ignore rules for the working tree."""

from fnmatch import fnmatch
from pathlib import Path

from loguru import logger

from .constants import BUILTIN_IGNORES, IGNORE_FILE


def parse_ignore_patterns(lines: list[str]) -> list[str]:
    """Drop blank lines and comments, returning the remaining patterns stripped."""
    patterns = []
    for line in lines:
        pattern = line.strip()
        if not pattern or pattern.startswith('#'):
            continue
        patterns.append(pattern)
    return patterns


class IgnoreRules:
    """Predicate deciding which working-tree paths are left out of trees.

    Built-in names (the repository directory, VCS metadata and editor clutter)
    are always ignored. Additional patterns come from `.bgitignore` at the root
    of the working tree:

    * `name/` ignores directories called `name`;
    * patterns containing `*`, `?` or `[` are matched with fnmatch against both the
      relative path and the entry name;
    * anything else matches a path component or a relative-path prefix.
    """

    def __init__(self, working_dir: Path | str, builtin: frozenset[str] = BUILTIN_IGNORES) -> None:
        self.working_dir = Path(working_dir)
        self.builtin = builtin
        self.patterns = self._load_patterns()

    def _load_patterns(self) -> list[str]:
        ignore_file = self.working_dir / IGNORE_FILE
        if not ignore_file.exists():
            return []

        try:
            return parse_ignore_patterns(ignore_file.read_text(encoding='utf-8').splitlines())
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f'Failed to read {ignore_file}: {e}')
            return []

    def _relative(self, path: Path) -> Path:
        path = Path(path)
        try:
            return path.relative_to(self.working_dir)
        except ValueError:
            return path

    def __call__(self, path: Path | str) -> bool:
        path = Path(path)
        relative = self._relative(path)
        parts = relative.parts
        if any(part in self.builtin for part in parts):
            return True

        relative_str = relative.as_posix()
        for pattern in self.patterns:
            if pattern.endswith('/'):
                if pattern.rstrip('/') in parts and path.is_dir():
                    return True
            elif any(c in pattern for c in '*?['):
                if fnmatch(relative_str, pattern) or fnmatch(path.name, pattern):
                    return True
            elif pattern in parts or relative_str == pattern or relative_str.startswith(f'{pattern}/'):
                return True

        return False


def ignore_nothing(path: Path) -> bool:
    """Predicate that ignores no path."""
    return False
