"""Low-level object storage and the tree/commit codecs."""

import hashlib
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path

from loguru import logger

from .constants import HASH_ALGORITHM, HASH_DIGEST_SIZE, TIMESTAMP_FORMAT
from .exceptions import (CorruptObjectError, CorruptTreeError, EmptyMessageError, InvalidHashError,
                         MalformedCommitError, ObjectNotFoundError, UnsupportedModeError)
from .objects import Blob, Commit, ObjectKind, Tree, TreeRecord, TreeRecordType
from .ref import HashRef, is_hash


def _header(kind: ObjectKind, size: int) -> bytes:
    return f'{kind.value} {size}\0'.encode('ascii')


def hash_object(kind: ObjectKind, data: bytes) -> HashRef:
    """Compute the object id of `data` stored as `kind`.

    :param kind: The object kind written into the header.
    :param data: The raw payload.
    :return: The hex digest of the header followed by the payload."""
    hasher = hashlib.new(HASH_ALGORITHM)
    hasher.update(_header(kind, len(data)))
    hasher.update(data)
    return HashRef(hasher.hexdigest())


def get_content_path(objects_dir: str | Path, object_hash: str) -> Path:
    """Return the sharded path of an object.

    :raises InvalidHashError: If `object_hash` is not a full hex hash."""
    if not isinstance(object_hash, str) or not is_hash(object_hash):
        msg = f'Invalid hash format: {object_hash!r}'
        raise InvalidHashError(msg)

    return Path(objects_dir) / object_hash[:2] / object_hash[2:]


def object_exists(objects_dir: str | Path, object_hash: str) -> bool:
    return get_content_path(objects_dir, object_hash).is_file()


def save_object(objects_dir: str | Path, kind: ObjectKind, data: bytes) -> HashRef:
    """Store an object and return its hash. Storing an existing object is a no-op.

    :param objects_dir: The objects directory of the repository.
    :param kind: The object kind.
    :param data: The raw payload.
    :return: The object's hash."""
    object_hash = hash_object(kind, data)
    path = get_content_path(objects_dir, object_hash)
    if path.exists():
        return object_hash

    path.parent.mkdir(parents=True, exist_ok=True)
    # Readers never observe a half-written object.
    with tempfile.NamedTemporaryFile(dir=path.parent, delete=False) as handle:
        handle.write(_header(kind, len(data)))
        handle.write(data)
    os.replace(handle.name, path)

    logger.debug(f'Stored {kind.value} {object_hash}')
    return object_hash


def load_object(objects_dir: str | Path, object_hash: str) -> tuple[ObjectKind, bytes]:
    """Load an object and validate its header.

    :param objects_dir: The objects directory of the repository.
    :param object_hash: The hash of the object to load.
    :return: The object kind and its payload.
    :raises InvalidHashError: If the hash is malformed.
    :raises ObjectNotFoundError: If no such object is stored.
    :raises CorruptObjectError: If the stored header is malformed."""
    path = get_content_path(objects_dir, object_hash)
    try:
        raw = path.read_bytes()
    except FileNotFoundError as e:
        msg = f'Object {object_hash} not found'
        raise ObjectNotFoundError(msg) from e

    nul = raw.find(b'\0')
    if nul == -1:
        msg = f'Object {object_hash} is corrupt: missing null byte'
        raise CorruptObjectError(msg)

    try:
        kind_token, size_token = raw[:nul].decode('ascii').split(' ')
        kind = ObjectKind(kind_token)
        size = int(size_token)
    except ValueError as e:
        msg = f'Object {object_hash} is corrupt: invalid header'
        raise CorruptObjectError(msg) from e

    payload = raw[nul + 1:]
    if size != len(payload):
        msg = f'Object {object_hash} is corrupt: expected {size} bytes, found {len(payload)}'
        raise CorruptObjectError(msg)

    return kind, payload


def read_object(objects_dir: str | Path, object_hash: str, expected: ObjectKind | None = None) -> bytes:
    """Load an object's payload, optionally checking its kind.

    :raises CorruptObjectError: If the object is not of the `expected` kind."""
    kind, payload = load_object(objects_dir, object_hash)
    if expected is not None and kind != expected:
        msg = f'Object {object_hash} is a {kind.value}, expected a {expected.value}'
        raise CorruptObjectError(msg)
    return payload


def save_file_content(objects_dir: str | Path, file: Path) -> Blob:
    """Store the content of a file as a blob.

    :raises ValueError: If the file does not exist."""
    if not file.is_file():
        msg = f'{file} is not a file'
        raise ValueError(msg)

    return Blob(save_object(objects_dir, ObjectKind.BLOB, file.read_bytes()))


def serialize_tree(tree: Tree) -> bytes:
    """Serialize a tree as concatenated `<mode> <name>\\0<raw hash>` entries, sorted by name."""
    return b''.join(f'{record.mode} {record.name}\0'.encode() + bytes.fromhex(record.hash)
                    for record in tree.sorted_records())


def parse_tree_records(data: bytes) -> list[TreeRecord]:
    """Parse the payload of a tree object into its records, in stored order.

    :raises CorruptTreeError: If an entry is truncated or malformed.
    :raises UnsupportedModeError: If an entry carries an unknown mode."""
    records: list[TreeRecord] = []
    pos = 0
    while pos < len(data):
        nul = data.find(b'\0', pos)
        if nul == -1:
            msg = 'Invalid tree format: missing null byte'
            raise CorruptTreeError(msg)

        mode_bytes, space, name_bytes = data[pos:nul].partition(b' ')
        if not space or not mode_bytes:
            msg = 'Invalid tree format: missing mode'
            raise CorruptTreeError(msg)

        try:
            mode = mode_bytes.decode('ascii')
            name = name_bytes.decode('utf-8')
        except UnicodeDecodeError as e:
            msg = 'Invalid tree format: undecodable entry'
            raise CorruptTreeError(msg) from e

        if not name or name in ('.', '..') or '/' in name:
            msg = f'Invalid tree format: bad entry name {name!r}'
            raise CorruptTreeError(msg)

        hash_end = nul + 1 + HASH_DIGEST_SIZE
        if hash_end > len(data):
            msg = 'Invalid tree format: truncated hash'
            raise CorruptTreeError(msg)

        try:
            record_type = TreeRecordType(mode)
        except ValueError as e:
            msg = f'Unsupported mode: {mode}'
            raise UnsupportedModeError(msg) from e

        records.append(TreeRecord(record_type, HashRef(data[nul + 1:hash_end].hex()), name))
        pos = hash_end

    return records


def save_tree(objects_dir: str | Path, tree: Tree) -> HashRef:
    return save_object(objects_dir, ObjectKind.TREE, serialize_tree(tree))


def list_tree(objects_dir: str | Path, tree_hash: str) -> list[TreeRecord]:
    """Return a single level of a tree object without recursing."""
    return parse_tree_records(read_object(objects_dir, tree_hash, ObjectKind.TREE))


def load_tree(objects_dir: str | Path, tree_hash: str) -> Tree:
    return Tree({record.name: record for record in list_tree(objects_dir, tree_hash)})


def serialize_commit(commit: Commit) -> bytes:
    lines = [f'tree {commit.tree_hash}']
    lines.extend(f'parent {parent}' for parent in commit.parents)
    lines.append(f'timestamp {commit.timestamp}')
    return ('\n'.join(lines) + '\n\n' + commit.message + '\n').encode()


def parse_commit(data: bytes) -> Commit:
    """Parse the payload of a commit object.

    :raises MalformedCommitError: If the text is undecodable or lacks a tree or timestamp."""
    try:
        text = data.decode('utf-8')
    except UnicodeDecodeError as e:
        msg = 'Invalid commit encoding'
        raise MalformedCommitError(msg) from e

    header, _, message = text.partition('\n\n')
    tree_hash: HashRef | None = None
    timestamp: str | None = None
    parents: list[HashRef] = []

    for line in header.split('\n'):
        key, _, value = line.partition(' ')
        match key:
            case 'tree':
                tree_hash = HashRef(value)
            case 'parent':
                parents.append(HashRef(value))
            case 'timestamp':
                timestamp = value

    if tree_hash is None:
        msg = 'Missing tree hash in commit'
        raise MalformedCommitError(msg)
    if timestamp is None:
        msg = 'Missing timestamp in commit'
        raise MalformedCommitError(msg)

    return Commit(tree_hash, parents, timestamp, message.removesuffix('\n'))


def save_commit(objects_dir: str | Path, commit: Commit) -> HashRef:
    return save_object(objects_dir, ObjectKind.COMMIT, serialize_commit(commit))


def create_commit(objects_dir: str | Path, tree_hash: str, parents: list[str], message: str,
                  timestamp: str | None = None) -> HashRef:
    """Build and store a commit object.

    :param objects_dir: The objects directory of the repository.
    :param tree_hash: The hash of the commit's tree.
    :param parents: Parent commit hashes, in order. Empty for a root commit.
    :param message: The commit message.
    :param timestamp: The commit timestamp. Defaults to the current UTC time.
    :return: The commit's hash.
    :raises EmptyMessageError: If the message is blank."""
    if message is None or not message.strip():
        msg = 'Commit message cannot be empty'
        raise EmptyMessageError(msg)

    if timestamp is None:
        timestamp = datetime.now(timezone.utc).strftime(TIMESTAMP_FORMAT)

    commit = Commit(HashRef(tree_hash), [HashRef(p) for p in parents], timestamp, message)
    return save_commit(objects_dir, commit)


def load_commit(objects_dir: str | Path, commit_hash: str) -> Commit:
    return parse_commit(read_object(objects_dir, commit_hash, ObjectKind.COMMIT))
