"""Traversal of the commit graph."""

from collections import deque
from collections.abc import Iterable, Iterator, Sequence
from pathlib import Path

from .exceptions import NoCommonAncestorError
from .plumbing import load_commit
from .ref import HashRef


def ancestors(objects_dir: str | Path, commit_hash: str) -> list[HashRef]:
    """Collect a commit and all of its ancestors, following every parent edge.

    :param objects_dir: The objects directory of the repository.
    :param commit_hash: The commit to start from. It is the first element of the result.
    :return: The commits in breadth-first order, each listed once.
    :raises ObjectNotFoundError: If a commit along the way is missing."""
    return list(iter_commits(objects_dir, [commit_hash]))


def iter_commits(objects_dir: str | Path, commit_hashes: Iterable[str]) -> Iterator[HashRef]:
    """Yield every commit reachable from `commit_hashes`, breadth-first, each exactly once."""
    queue = deque(HashRef(commit_hash) for commit_hash in commit_hashes)
    seen: set[HashRef] = set()

    while queue:
        current_hash = queue.popleft()
        if current_hash in seen:
            continue
        seen.add(current_hash)
        yield current_hash

        commit = load_commit(objects_dir, current_hash)
        queue.extend(parent for parent in commit.parents if parent not in seen)


def topological_order(objects_dir: str | Path, commit_hashes: Sequence[str]) -> list[HashRef]:
    """Order a set of commits so that each one comes after its parents within the set.

    :param objects_dir: The objects directory of the repository.
    :param commit_hashes: The commits to order, newest first as `ancestors` lists them.
    :return: The same commits, parents before children. A linear history comes out oldest first.
    :raises ObjectNotFoundError: If a commit is missing."""
    members = set(commit_hashes)
    ordered: list[HashRef] = []
    visited: set[str] = set()

    for start in reversed(commit_hashes):
        stack = [(start, False)]
        while stack:
            commit_hash, expanded = stack.pop()
            if expanded:
                ordered.append(HashRef(commit_hash))
                continue
            if commit_hash in visited:
                continue

            visited.add(commit_hash)
            stack.append((commit_hash, True))
            parents = load_commit(objects_dir, commit_hash).parents
            stack.extend((parent, False) for parent in reversed(parents) if parent in members)

    return ordered


def is_ancestor(objects_dir: str | Path, ancestor: str, descendant: str) -> bool:
    """Return True if `ancestor` is reachable from `descendant`. A commit is its own ancestor."""
    return any(commit_hash == ancestor for commit_hash in iter_commits(objects_dir, [descendant]))


def merge_base(objects_dir: str | Path, hash1: str, hash2: str) -> HashRef:
    """Find the common ancestor of two commits closest to `hash1`.

    :param objects_dir: The objects directory of the repository.
    :param hash1: The commit whose ancestry order decides the result.
    :param hash2: The other commit.
    :return: The first ancestor of `hash1`, in breadth-first order, that is also an ancestor of `hash2`.
    :raises NoCommonAncestorError: If the two histories are disjoint."""
    if hash1 == hash2:
        return HashRef(hash1)

    other_ancestors = set(ancestors(objects_dir, hash2))
    for commit_hash in iter_commits(objects_dir, [hash1]):
        if commit_hash in other_ancestors:
            return commit_hash

    msg = f'No common ancestor between {hash1} and {hash2}'
    raise NoCommonAncestorError(msg)
