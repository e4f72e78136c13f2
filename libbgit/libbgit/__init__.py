"""libbgit - a content-addressed version control engine."""

from .exceptions import (CorruptObjectError, CorruptTreeError, EmptyMessageError, InvalidHashError,
                         MalformedCommitError, MergeConflictPathError, MergeError, NameNotFoundError,
                         NoCommonAncestorError, ObjectNotFoundError, RefError, RepositoryError,
                         RepositoryNotFoundError, UnexpectedSubmoduleError, UnsupportedModeError)
from .objects import Blob, Commit, ObjectKind, Tree, TreeRecord, TreeRecordType
from .ref import HashRef, SymRef

__all__ = [
    'Blob',
    'Commit',
    'CorruptObjectError',
    'CorruptTreeError',
    'EmptyMessageError',
    'HashRef',
    'InvalidHashError',
    'MalformedCommitError',
    'MergeConflictPathError',
    'MergeError',
    'NameNotFoundError',
    'NoCommonAncestorError',
    'ObjectKind',
    'ObjectNotFoundError',
    'RefError',
    'RepositoryError',
    'RepositoryNotFoundError',
    'SymRef',
    'Tree',
    'TreeRecord',
    'TreeRecordType',
    'UnexpectedSubmoduleError',
    'UnsupportedModeError',
]
