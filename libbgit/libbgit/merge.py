"""Merge helpers for libbgit."""

from dataclasses import dataclass, field
from difflib import SequenceMatcher
from pathlib import Path
from typing import TypeAlias

from merge3 import Merge3

from .constants import CONFLICT_END, CONFLICT_MID, CONFLICT_START, HEAD_LABEL, MERGE_HEAD_FILE
from .diff import TreeComparisonRow, compare_trees
from .exceptions import UnexpectedSubmoduleError
from .graph import merge_base
from .objects import ObjectKind, TreeRecordType
from .plumbing import read_object
from .ref import HashRef


@dataclass(frozen=True)
class Clean:
    """Merged content without conflicts."""

    content: bytes


@dataclass(frozen=True)
class Conflicted:
    """Merged content holding at least one conflict region."""

    content: bytes


@dataclass(frozen=True)
class Directory:
    """Marks a merged path that is a directory."""


DIRECTORY = Directory()

MergeOutcome: TypeAlias = Clean | Conflicted


@dataclass
class MergeResult:
    """Represents the output of a merge into the working tree."""

    commit_hash: HashRef
    conflicts: list[str] = field(default_factory=list)
    fast_forward: bool = False


def _terminated(lines: list[bytes]) -> list[bytes]:
    if lines and not lines[-1].endswith(b'\n'):
        return [*lines[:-1], lines[-1] + b'\n']
    return lines


def _append_conflict(output: list[bytes], head_lines: list[bytes], other_lines: list[bytes],
                     other_label: str) -> None:
    if output and not output[-1].endswith(b'\n'):
        output[-1] += b'\n'
    output.append(CONFLICT_START + b' ' + HEAD_LABEL.encode() + b'\n')
    output.extend(_terminated(head_lines))
    output.append(CONFLICT_MID + b'\n')
    output.extend(_terminated(other_lines))
    output.append(CONFLICT_END + b' ' + other_label.encode() + b'\n')


def merge_blobs_three_way(base: bytes | None, head: bytes | None, other: bytes | None,
                          other_label: str = MERGE_HEAD_FILE) -> MergeOutcome:
    """Merge two versions of a file against their common ancestor.

    Absent versions read as empty content. Changes made on one side only are taken,
    identical changes are taken once, and divergent changes become conflict regions.

    :param base: The content in the merge base.
    :param head: The content on the current side.
    :param other: The content on the side being merged in.
    :param other_label: The label written after the closing conflict marker.
    :return: Clean or Conflicted merged content."""
    base, head, other = base or b'', head or b'', other or b''

    if head == other:
        return Clean(head)
    if base == head:
        return Clean(other)
    if base == other:
        return Clean(head)

    merger = Merge3(base.splitlines(keepends=True), head.splitlines(keepends=True),
                    other.splitlines(keepends=True))
    output: list[bytes] = []
    conflicted = False

    for group in merger.merge_groups():
        match group:
            case ('conflict', _, head_lines, other_lines):
                conflicted = True
                _append_conflict(output, list(head_lines), list(other_lines), other_label)
            case (_, lines):
                output.extend(lines)

    content = b''.join(output)
    return Conflicted(content) if conflicted else Clean(content)


def merge_blobs(head: bytes | None, other: bytes | None, other_label: str = MERGE_HEAD_FILE) -> MergeOutcome:
    """Merge two versions of a file that have no common ancestor.

    Runs the two versions share are kept; every run where they differ becomes a conflict region."""
    head, other = head or b'', other or b''
    if head == other:
        return Clean(head)

    head_lines = head.splitlines(keepends=True)
    other_lines = other.splitlines(keepends=True)
    output: list[bytes] = []

    matcher = SequenceMatcher(None, head_lines, other_lines, autojunk=False)
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag == 'equal':
            output.extend(head_lines[i1:i2])
        else:
            _append_conflict(output, head_lines[i1:i2], other_lines[j1:j2], other_label)

    return Conflicted(b''.join(output))


def _read_blob(objects_dir: str | Path, blob_hash: HashRef | None) -> bytes | None:
    return read_object(objects_dir, blob_hash, ObjectKind.BLOB) if blob_hash else None


def _deleted_against_unchanged(base_hash: HashRef | None, head_hash: HashRef | None,
                               other_hash: HashRef | None) -> bool:
    if head_hash is None and other_hash is None:
        return True
    if base_hash is None:
        return False
    return (head_hash is None and other_hash == base_hash) or (other_hash is None and head_hash == base_hash)


_Entry: TypeAlias = tuple[TreeRecordType, HashRef] | None


def _with_empty_base(row: TreeComparisonRow) -> TreeComparisonRow:
    shadowed = (None, *row.shadowed) if row.shadowed else ()
    return TreeComparisonRow(row.path, row.type, (None, *row.hashes), shadowed)


def _entries(row: TreeComparisonRow) -> list[_Entry]:
    entries: list[_Entry] = []
    for tree_hash, blob_hash in zip(row.hashes, row.shadowed):
        if tree_hash:
            entries.append((TreeRecordType.TREE, tree_hash))
        elif blob_hash:
            entries.append((TreeRecordType.BLOB, blob_hash))
        else:
            entries.append(None)
    return entries


def _take(objects_dir: str | Path, merged: dict[str, MergeOutcome | Directory], path: str, entry: _Entry) -> None:
    match entry:
        case (TreeRecordType.TREE, _):
            merged[path] = DIRECTORY
        case (TreeRecordType.BLOB, blob_hash):
            merged[path] = Clean(_read_blob(objects_dir, blob_hash))


def _merge_file_and_directory(objects_dir: str | Path, merged: dict[str, MergeOutcome | Directory],
                              row: TreeComparisonRow, other_label: str) -> None:
    """Merge a path that is a directory in some trees and a file in others.

    A side that left the path as it was in the base takes the other side's entry. When both sides
    changed it differently and one of them made it a directory, the directory wins and each file
    side is kept next to it as a conflicted `<path>~<label>` entry."""
    base, head, other = _entries(row)
    if head == other or other == base:
        _take(objects_dir, merged, row.path, head)
    elif head == base:
        _take(objects_dir, merged, row.path, other)
    elif any(entry is not None and entry[0] == TreeRecordType.TREE for entry in (head, other)):
        merged[row.path] = DIRECTORY
        for label, entry in ((HEAD_LABEL, head), (other_label, other)):
            if entry is not None and entry[0] == TreeRecordType.BLOB:
                merged[f'{row.path}~{label.replace("/", "_")}'] = Conflicted(_read_blob(objects_dir, entry[1]))
    else:
        # the base holds a directory here; both sides replaced or removed it
        head_blob = _read_blob(objects_dir, head[1]) if head else None
        other_blob = _read_blob(objects_dir, other[1]) if other else None
        merged[row.path] = merge_blobs_three_way(None, head_blob, other_blob, other_label)


def merge_trees(objects_dir: str | Path, base_tree: str | None, head_tree: str, other_tree: str,
                other_label: str = MERGE_HEAD_FILE) -> dict[str, MergeOutcome | Directory]:
    """Merge two trees, optionally against their common ancestor.

    :param objects_dir: The objects directory of the repository.
    :param base_tree: The merge base tree, or None for a two-way merge.
    :param head_tree: The current side's tree.
    :param other_tree: The tree being merged in.
    :param other_label: The label written after the closing conflict marker.
    :return: Relative paths mapped to merged content or DIRECTORY. Deleted paths are absent.
    :raises UnexpectedSubmoduleError: If any tree holds a commit entry."""
    merged: dict[str, MergeOutcome | Directory] = {}

    if base_tree:
        rows = compare_trees(objects_dir, [base_tree, head_tree, other_tree])
    else:
        rows = [_with_empty_base(row) for row in compare_trees(objects_dir, [head_tree, other_tree])]

    for row in rows:
        base_hash, head_hash, other_hash = row.hashes
        match row.type:
            case TreeRecordType.COMMIT:
                msg = f'Unexpected submodule at {row.path}'
                raise UnexpectedSubmoduleError(msg)
            case TreeRecordType.TREE if row.shadowed:
                _merge_file_and_directory(objects_dir, merged, row, other_label)
            case TreeRecordType.TREE:
                if not _deleted_against_unchanged(base_hash, head_hash, other_hash):
                    merged[row.path] = DIRECTORY
            case TreeRecordType.BLOB:
                if _deleted_against_unchanged(base_hash, head_hash, other_hash):
                    continue
                if not base_tree and (head_hash is None or other_hash is None):
                    merged[row.path] = Clean(_read_blob(objects_dir, head_hash or other_hash))
                    continue

                head = _read_blob(objects_dir, head_hash)
                other = _read_blob(objects_dir, other_hash)
                if base_tree:
                    merged[row.path] = merge_blobs_three_way(_read_blob(objects_dir, base_hash), head, other,
                                                             other_label)
                else:
                    merged[row.path] = merge_blobs(head, other, other_label)

    return merged


def conflicted_paths(merged: dict[str, MergeOutcome | Directory]) -> list[str]:
    return sorted(path for path, outcome in merged.items() if isinstance(outcome, Conflicted))


def fast_forward_eligible(objects_dir: str | Path, head: str, other: str) -> bool:
    """Return True if `head` is an ancestor of `other`, so HEAD can simply move forward."""
    return merge_base(objects_dir, head, other) == head
