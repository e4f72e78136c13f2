"""Exception hierarchy for libbgit."""


class RepositoryError(Exception):
    """Exception raised for repository-related errors."""


class RepositoryNotFoundError(RepositoryError):
    """Exception raised when a repository is not found."""


class ObjectNotFoundError(RepositoryError):
    """No object is stored under the requested hash."""


class NameNotFoundError(RepositoryError):
    """A ref or name could not be resolved."""


class InvalidHashError(RepositoryError):
    """A caller-supplied hash is not hex of the expected length."""


class CorruptObjectError(RepositoryError):
    """Stored object bytes violate the object format."""


class CorruptTreeError(CorruptObjectError):
    """A tree object has truncated or malformed entries."""


class MalformedCommitError(CorruptObjectError):
    """A commit object is missing required headers."""


class EmptyMessageError(RepositoryError, ValueError):
    """A commit was attempted with a blank message."""


class UnsupportedModeError(RepositoryError):
    """A tree entry carries a mode that cannot be materialized."""


class RefError(RepositoryError):
    """Exception raised for malformed or unresolvable references."""


class MergeError(RepositoryError):
    """Exception raised for merge-related errors."""


class NoCommonAncestorError(MergeError):
    """Two commits share no history."""


class UnexpectedSubmoduleError(MergeError):
    """A commit entry was found inside a tree being merged."""


class MergeConflictPathError(MergeError):
    """Materializing a merge hit a file/directory clash on disk."""
