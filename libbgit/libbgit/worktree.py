"""Conversion between working directories and tree objects."""

import shutil
from collections import deque
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import TypeAlias

from loguru import logger

from .exceptions import MergeConflictPathError, UnsupportedModeError
from .ignore import ignore_nothing
from .merge import Directory, MergeOutcome
from .objects import ObjectKind, Tree, TreeRecord, TreeRecordType
from .plumbing import list_tree, read_object, save_object, save_tree
from .ref import HashRef

IgnorePredicate: TypeAlias = Callable[[Path], bool]


def build_tree(objects_dir: Path, path: Path, is_ignored: IgnorePredicate = ignore_nothing) -> HashRef:
    """Store the content of a directory as a tree object.

    Directories are processed bottom-up with an explicit stack, so deep
    hierarchies do not hit the recursion limit.

    :param objects_dir: The objects directory of the repository.
    :param path: The directory to store.
    :param is_ignored: Predicate for entries to leave out.
    :return: The hash of the root tree.
    :raises NotADirectoryError: If the path is not a directory."""
    if not path or not path.is_dir():
        msg = f'{path} is not a directory'
        raise NotADirectoryError(msg)

    stack = deque([path])
    hashes: dict[Path, HashRef] = {}

    while stack:
        current_path = stack.pop()
        tree_records: dict[str, TreeRecord] = {}

        for item in current_path.iterdir():
            if is_ignored(item):
                continue
            if item.is_file():
                blob_hash = save_object(objects_dir, ObjectKind.BLOB, item.read_bytes())
                tree_records[item.name] = TreeRecord(TreeRecordType.BLOB, blob_hash, item.name)
            elif item.is_dir():
                if item in hashes:
                    tree_records[item.name] = TreeRecord(TreeRecordType.TREE, hashes[item], item.name)
                else:
                    stack.append(current_path)
                    stack.append(item)
                    break
        else:
            hashes[current_path] = save_tree(objects_dir, Tree(tree_records))

    return hashes[path]


def empty_directory(path: Path, is_ignored: IgnorePredicate = ignore_nothing) -> None:
    """Delete every entry of `path` that is not ignored. Ignored entries are kept as they are."""
    for item in path.iterdir():
        if is_ignored(item):
            continue
        if item.is_dir() and not item.is_symlink():
            shutil.rmtree(item)
        else:
            item.unlink()


def read_tree(objects_dir: Path, tree_hash: str, path: Path, is_ignored: IgnorePredicate = ignore_nothing) -> None:
    """Replace the content of `path` with the content of a tree object.

    Everything in `path` that is not ignored is deleted first.

    :raises UnsupportedModeError: If the tree holds an entry that cannot be materialized.
    :raises CorruptTreeError: If a tree object is malformed."""
    root_records = list_tree(objects_dir, tree_hash)
    empty_directory(path, is_ignored)

    queue: deque[tuple[list[TreeRecord], Path]] = deque([(root_records, path)])
    while queue:
        records, current_path = queue.popleft()
        for record in records:
            target = current_path / record.name
            if is_ignored(target):
                continue

            match record.type:
                case TreeRecordType.BLOB:
                    target.write_bytes(read_object(objects_dir, record.hash, ObjectKind.BLOB))
                case TreeRecordType.TREE:
                    target.mkdir(parents=True, exist_ok=True)
                    queue.append((list_tree(objects_dir, record.hash), target))
                case _:
                    msg = f'Unsupported mode: {record.mode}'
                    raise UnsupportedModeError(msg)


def read_tree_merged(path: Path, merged: Mapping[str, MergeOutcome | Directory],
                     is_ignored: IgnorePredicate = ignore_nothing) -> None:
    """Materialize the result of a tree merge into `path`.

    Entries are processed in sorted order, so parents always precede their children.

    :param path: The directory to write into. It is emptied first.
    :param merged: Merge result mapping relative paths to content or a directory marker.
    :param is_ignored: Predicate for entries to keep untouched.
    :raises MergeConflictPathError: If a file and a directory compete for the same path."""
    empty_directory(path, is_ignored)

    for rel_path in sorted(merged):
        target = path / rel_path
        entry = merged[rel_path]
        try:
            if isinstance(entry, Directory):
                if target.exists() and not target.is_dir():
                    msg = f'Cannot create directory {rel_path}: a file is in the way'
                    raise MergeConflictPathError(msg)
                target.mkdir(parents=True, exist_ok=True)
                continue

            if target.is_dir():
                msg = f'Cannot write file {rel_path}: a directory is in the way'
                raise MergeConflictPathError(msg)
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(entry.content)
        except (FileExistsError, NotADirectoryError) as e:
            msg = f'Cannot materialize {rel_path}: a file is in the way'
            raise MergeConflictPathError(msg) from e

    logger.debug(f'Materialized {len(merged)} merged entries into {path}')
