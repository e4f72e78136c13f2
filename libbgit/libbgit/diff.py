"""Tree comparison and unified text diffs."""

from collections import deque
from collections.abc import Sequence
from dataclasses import dataclass
from difflib import SequenceMatcher
from enum import Enum
from pathlib import Path

from loguru import logger

from .exceptions import RepositoryError
from .objects import ObjectKind, TreeRecord, TreeRecordType
from .plumbing import list_tree, read_object
from .ref import HashRef

CONTEXT_LINES = 3
FUNCTION_CONTEXT_WIDTH = 40
NO_NEWLINE_MARKER = b'\\ No newline at end of file\n'


@dataclass(frozen=True)
class TreeComparisonRow:
    """A single path across several trees.

    `hashes` holds one entry per compared tree, None where the tree has no entry of type `type` at `path`.
    When some trees hold a directory at `path` and others a file, `shadowed` holds the file hashes,
    one entry per compared tree; it is empty otherwise.
    """

    path: str
    type: TreeRecordType
    hashes: tuple[HashRef | None, ...]
    shadowed: tuple[HashRef | None, ...] = ()


class ChangeStatus(Enum):
    ADDED = 'added'
    DELETED = 'deleted'
    MODIFIED = 'modified'


@dataclass(frozen=True)
class Change:
    path: str
    status: ChangeStatus


def _row_type(records: Sequence[TreeRecord | None]) -> TreeRecordType:
    types = {record.type for record in records if record is not None}
    for record_type in (TreeRecordType.TREE, TreeRecordType.COMMIT):
        if record_type in types:
            return record_type
    return TreeRecordType.BLOB


def _list_subtree(objects_dir: str | Path, tree_hash: HashRef, path: str) -> list[TreeRecord]:
    try:
        return list_tree(objects_dir, tree_hash)
    except RepositoryError as e:
        logger.warning(f'Skipping unreadable tree {tree_hash} at {path}: {e}')
        return []


def compare_trees(objects_dir: str | Path, tree_hashes: Sequence[str | None]) -> list[TreeComparisonRow]:
    """Align the entries of several trees by relative path.

    Sub-trees are expanded breadth-first for every input at once. Where the inputs disagree about
    the type of an entry, a tree wins; inputs holding another type count as absent for that row,
    and the files they hold there are kept in the row's `shadowed` hashes.

    :param objects_dir: The objects directory of the repository.
    :param tree_hashes: The root trees to compare. None or an empty string contributes nothing.
    :return: One row per path, sorted by path.
    :raises ObjectNotFoundError: If a root tree is missing.
    :raises CorruptTreeError: If a root tree is malformed."""
    width = len(tree_hashes)
    rows: list[TreeComparisonRow] = []

    roots = [list_tree(objects_dir, tree_hash) if tree_hash else [] for tree_hash in tree_hashes]
    queue: deque[tuple[str, list[list[TreeRecord]]]] = deque([('', roots)])

    while queue:
        prefix, listings = queue.popleft()
        by_name: dict[str, list[TreeRecord | None]] = {}
        for i, records in enumerate(listings):
            for record in records:
                by_name.setdefault(record.name, [None] * width)[i] = record

        for name, records in by_name.items():
            path = f'{prefix}/{name}' if prefix else name
            row_type = _row_type(records)
            hashes = tuple(record.hash if record is not None and record.type == row_type else None
                           for record in records)
            blob_hashes = tuple(record.hash if record is not None and record.type == TreeRecordType.BLOB else None
                                for record in records)
            shadowed = blob_hashes if row_type != TreeRecordType.BLOB and any(blob_hashes) else ()
            rows.append(TreeComparisonRow(path, row_type, hashes, shadowed))

            if row_type == TreeRecordType.TREE:
                children = [_list_subtree(objects_dir, tree_hash, path) if tree_hash else []
                            for tree_hash in hashes]
                queue.append((path, children))

    rows.sort(key=lambda row: row.path)
    return rows


def _format_range(start: int, length: int) -> str:
    """Format a hunk range the way difflib.unified_diff does; the hunk loop is our own for the function context."""
    beginning = start + 1
    if length == 1:
        return f'{beginning}'
    if not length:
        beginning -= 1
    return f'{beginning},{length}'


def _function_context(lines: list[bytes], index: int) -> bytes:
    for line in reversed(lines[:index]):
        first = line[:1]
        if first.isalpha() or first in (b'_', b'$'):
            return line.rstrip(b'\r\n')[:FUNCTION_CONTEXT_WIDTH].rstrip()
    return b''


def _emit(prefix: bytes, line: bytes) -> bytes:
    if line.endswith(b'\n'):
        return prefix + line
    return prefix + line + b'\n' + NO_NEWLINE_MARKER


def diff_blobs(old: bytes | None, new: bytes | None, path: str) -> bytes:
    """Render a unified diff between two versions of a file.

    :param old: The old content, or None if the file did not exist.
    :param new: The new content, or None if the file no longer exists.
    :param path: The path used in the `a/` and `b/` labels.
    :return: The diff, or empty bytes if the contents are equal."""
    old_lines = (old or b'').splitlines(keepends=True)
    new_lines = (new or b'').splitlines(keepends=True)
    if old_lines == new_lines:
        return b''

    output = [f'--- a/{path}\n'.encode(), f'+++ b/{path}\n'.encode()]
    matcher = SequenceMatcher(None, old_lines, new_lines, autojunk=False)
    for group in matcher.get_grouped_opcodes(CONTEXT_LINES):
        first, last = group[0], group[-1]
        old_range = _format_range(first[1], last[2] - first[1])
        new_range = _format_range(first[3], last[4] - first[3])
        header = f'@@ -{old_range} +{new_range} @@'.encode()
        context = _function_context(old_lines, first[1])
        output.append(header + (b' ' + context if context else b'') + b'\n')

        for tag, i1, i2, j1, j2 in group:
            if tag == 'equal':
                output.extend(_emit(b' ', line) for line in old_lines[i1:i2])
                continue
            if tag in ('replace', 'delete'):
                output.extend(_emit(b'-', line) for line in old_lines[i1:i2])
            if tag in ('replace', 'insert'):
                output.extend(_emit(b'+', line) for line in new_lines[j1:j2])

    return b''.join(output)


def _read_blob(objects_dir: str | Path, blob_hash: HashRef | None) -> bytes | None:
    return read_object(objects_dir, blob_hash, ObjectKind.BLOB) if blob_hash else None


def _file_hashes(row: TreeComparisonRow) -> tuple[HashRef | None, ...]:
    # A file replaced by a directory (or the reverse) shows up as a file added or deleted at the row's path
    if row.type == TreeRecordType.BLOB:
        return row.hashes
    return row.shadowed or (None,) * len(row.hashes)


def diff_trees(objects_dir: str | Path, old_tree: str | None, new_tree: str | None) -> bytes:
    """Concatenate the diffs of every file that differs between two trees, in path order."""
    output = []
    for row in compare_trees(objects_dir, [old_tree, new_tree]):
        old_hash, new_hash = _file_hashes(row)
        if old_hash == new_hash:
            continue
        output.append(diff_blobs(_read_blob(objects_dir, old_hash), _read_blob(objects_dir, new_hash), row.path))
    return b''.join(output)


def changed_paths(objects_dir: str | Path, old_tree: str | None, new_tree: str | None) -> list[Change]:
    """List the files that were added, deleted or modified between two trees."""
    changes = []
    for row in compare_trees(objects_dir, [old_tree, new_tree]):
        old_hash, new_hash = _file_hashes(row)
        if old_hash == new_hash:
            continue

        if old_hash is None:
            status = ChangeStatus.ADDED
        elif new_hash is None:
            status = ChangeStatus.DELETED
        else:
            status = ChangeStatus.MODIFIED
        changes.append(Change(row.path, status))
    return changes
