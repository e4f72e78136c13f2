"""Object model: blobs, trees and commits."""

from dataclasses import dataclass, field
from enum import Enum

from .constants import MODE_DIR, MODE_FILE, MODE_GITLINK
from .ref import HashRef


class ObjectKind(Enum):
    """The kind token stored in every object header."""

    BLOB = 'blob'
    TREE = 'tree'
    COMMIT = 'commit'


class TreeRecordType(Enum):
    """Kind of object a tree entry points at, keyed by its mode."""

    BLOB = MODE_FILE
    TREE = MODE_DIR
    COMMIT = MODE_GITLINK

    @property
    def mode(self) -> str:
        return self.value

    @property
    def kind(self) -> ObjectKind:
        return ObjectKind[self.name]


@dataclass(frozen=True)
class TreeRecord:
    """A single entry of a tree object."""

    type: TreeRecordType
    hash: HashRef
    name: str

    @property
    def mode(self) -> str:
        return self.type.mode


@dataclass
class Tree:
    """A directory listing: entry name to record."""

    records: dict[str, TreeRecord] = field(default_factory=dict)

    def sorted_records(self) -> list[TreeRecord]:
        """Return the records ordered byte-wise by name, as they are serialized."""
        return [self.records[name] for name in sorted(self.records, key=lambda n: n.encode())]


@dataclass(frozen=True)
class Blob:
    """A stored file's hash."""

    hash: HashRef


@dataclass
class Commit:
    """Snapshot metadata pointing at a tree and zero or more parents."""

    tree_hash: HashRef
    parents: list[HashRef]
    timestamp: str
    message: str

    @property
    def parent(self) -> HashRef | None:
        """The first parent, or None for a root commit."""
        return self.parents[0] if self.parents else None

    @property
    def is_merge(self) -> bool:
        return len(self.parents) > 1
