"""libbgit repository management."""

from collections.abc import Callable, Generator
from dataclasses import dataclass, field
from functools import wraps
from pathlib import Path, PurePosixPath
from typing import Concatenate, ParamSpec, TypeVar

from loguru import logger

from . import Blob, Commit, TreeRecord
from .constants import (BUILTIN_IGNORES, DEFAULT_BRANCH, DEFAULT_REPO_DIR, HEADS_DIR, HEAD_FILE, HOUSEKEEPING_FILES,
                        MAX_REF_DEPTH, MERGE_HEAD_FILE, OBJECTS_SUBDIR, REFS_DIR, TAGS_DIR)
from .diff import Change, changed_paths, diff_trees
from .exceptions import MergeError, NameNotFoundError, RefError, RepositoryError, RepositoryNotFoundError
from .graph import ancestors, iter_commits, merge_base, topological_order
from .ignore import IgnoreRules
from .merge import MergeResult, conflicted_paths, merge_trees
from .plumbing import create_commit, list_tree, load_commit, read_object, save_file_content
from .ref import HashRef, Ref, SymRef, is_hash, read_ref, write_ref
from .worktree import build_tree, read_tree, read_tree_merged

__all__ = ['LogEntry', 'MergeResult', 'Repository', 'RepositoryError', 'RepositoryNotFoundError', 'ShowResult',
           'Tag', 'branch_ref', 'tag_ref']

P = ParamSpec('P')
R = TypeVar('R')


@dataclass
class LogEntry:
    """A class representing a log entry for a branch or commit history."""

    commit_ref: HashRef
    commit: Commit
    refs: list[str] = field(default_factory=list)


@dataclass
class Tag:
    """Represents an immutable label that points to a commit."""

    name: str
    target: HashRef


@dataclass
class ShowResult:
    """A commit together with its changes against its first parent."""

    commit_ref: HashRef
    commit: Commit
    diff: bytes


class Repository:
    """Represents a libbgit repository.

    This class provides methods to initialize a repository, manage refs, branches and tags,
    commit the working directory, and merge or rebase histories."""

    def __init__(self, working_dir: Path | str, repo_dir: Path | str | None = None) -> None:
        """Initialize a Repository instance. The repository is not created on disk until `init()` is called.

        :param working_dir: The working directory where the repository will be located.
        :param repo_dir: The name of the repository directory within the working directory. Defaults to '.bgit'."""
        self.working_dir = Path(working_dir)

        if repo_dir is None:
            self.repo_dir = Path(DEFAULT_REPO_DIR)
        else:
            self.repo_dir = Path(repo_dir)

    def init(self, default_branch: str = DEFAULT_BRANCH) -> None:
        """Initialize a new bGit repository in the working directory.

        :param default_branch: The name of the default branch to create. Defaults to 'master'.
        :raises RepositoryError: If the repository already exists."""
        if self.exists():
            msg = f'Repository already exists at {self.repo_path()}'
            raise RepositoryError(msg)

        self.repo_path().mkdir(parents=True)
        self.objects_dir().mkdir()
        self.heads_dir().mkdir(parents=True)
        self.tags_dir().mkdir(parents=True)

        write_ref(self.heads_dir() / default_branch, None)
        write_ref(self.head_file(), branch_ref(default_branch))

        logger.info(f'Initialized empty repository in {self.repo_path()}')

    def exists(self) -> bool:
        """Check if the repository exists in the working directory.

        :return: True if the repository exists, False otherwise."""
        return self.repo_path().exists()

    def repo_path(self) -> Path:
        """Get the path to the repository directory.

        :return: The path to the repository directory."""
        return self.working_dir / self.repo_dir

    def objects_dir(self) -> Path:
        """Get the path to the objects directory within the repository.

        :return: The path to the objects directory."""
        return self.repo_path() / OBJECTS_SUBDIR

    def refs_dir(self) -> Path:
        """Get the path to the refs directory within the repository.

        :return: The path to the refs directory."""
        return self.repo_path() / REFS_DIR

    def heads_dir(self) -> Path:
        """Get the path to the heads directory within the repository.

        :return: The path to the heads directory."""
        return self.refs_dir() / HEADS_DIR

    def tags_dir(self) -> Path:
        """Get the path to the tags directory within the repository."""
        return self.refs_dir() / TAGS_DIR

    def head_file(self) -> Path:
        """Get the path to the HEAD file within the repository.

        :return: The path to the HEAD file."""
        return self.repo_path() / HEAD_FILE

    def merge_head_file(self) -> Path:
        """Get the path to the MERGE_HEAD file, which exists only while a merge is in progress."""
        return self.repo_path() / MERGE_HEAD_FILE

    def ignore_rules(self) -> IgnoreRules:
        """Build the ignore predicate for the working directory, always leaving out the repository directory."""
        return IgnoreRules(self.working_dir, BUILTIN_IGNORES | {self.repo_dir.name})

    @staticmethod
    def requires_repo(func: Callable[Concatenate['Repository', P], R]) -> \
            Callable[Concatenate['Repository', P], R]:
        """Decorate a Repository method to ensure that the repository exists before executing the method.

        :param func: The method to decorate.
        :return: A wrapper function that checks for the repository's existence."""

        @wraps(func)
        def _verify_repo(self: 'Repository', *args: P.args, **kwargs: P.kwargs) -> R:
            if not self.exists():
                msg = f'Repository not initialized at {self.repo_path()}'
                raise RepositoryNotFoundError(msg)

            return func(self, *args, **kwargs)

        return _verify_repo

    def _ref_path(self, name: str) -> Path:
        ref_name = PurePosixPath(name)
        if not name or ref_name.is_absolute() or '..' in ref_name.parts:
            msg = f'Invalid reference name: {name!r}'
            raise RefError(msg)

        return self.repo_path() / ref_name

    def _follow(self, name: str) -> tuple[str, Ref | None]:
        """Follow a chain of symbolic references.

        :return: The name of the last ref in the chain and its value. A missing ref ends the chain with None.
        :raises RefError: If the chain is longer than MAX_REF_DEPTH."""
        current = name
        for _ in range(MAX_REF_DEPTH):
            path = self._ref_path(current)
            if not path.is_file():
                return current, None

            value = read_ref(path)
            if not isinstance(value, SymRef):
                return current, value
            current = str(value)

        msg = f'Reference chain starting at {name} is deeper than {MAX_REF_DEPTH}'
        raise RefError(msg)

    @requires_repo
    def get_ref(self, name: str, deref: bool = True) -> Ref | None:
        """Read a reference by name, such as 'HEAD' or 'refs/heads/master'.

        :param name: The ref name relative to the repository directory.
        :param deref: Follow symbolic references down to a direct value.
        :return: The reference value, or None if it is empty or dangling.
        :raises NameNotFoundError: If the ref does not exist.
        :raises RefError: If the ref is malformed or its chain is too deep.
        :raises RepositoryNotFoundError: If the repository does not exist."""
        path = self._ref_path(name)
        if not path.is_file():
            msg = f'Reference "{name}" does not exist'
            raise NameNotFoundError(msg)

        if not deref:
            return read_ref(path)
        return self._follow(name)[1]

    @requires_repo
    def set_ref(self, name: str, value: Ref | None, deref: bool = True) -> None:
        """Write a reference, creating it if needed.

        With `deref`, the value is written to the last ref of `name`'s symbolic chain, so setting HEAD
        while a branch is checked out moves the branch.

        :param name: The ref name relative to the repository directory.
        :param value: The value to write. None writes an empty ref.
        :param deref: Follow symbolic references before writing.
        :raises RepositoryNotFoundError: If the repository does not exist."""
        target = self._follow(name)[0] if deref else name
        write_ref(self._ref_path(target), value)
        logger.debug(f'Updated {target} to {value}')

    @requires_repo
    def delete_ref(self, name: str, deref: bool = False) -> None:
        """Delete a reference.

        :raises NameNotFoundError: If the ref does not exist.
        :raises RepositoryNotFoundError: If the repository does not exist."""
        target = self._follow(name)[0] if deref else name
        path = self._ref_path(target)
        if not path.is_file():
            msg = f'Reference "{target}" does not exist'
            raise NameNotFoundError(msg)

        path.unlink()
        logger.debug(f'Deleted {target}')

    @requires_repo
    def iter_refs(self, prefix: str = f'{REFS_DIR}/', deref: bool = True) -> list[tuple[str, Ref | None]]:
        """List every reference whose name starts with `prefix`, sorted by name.

        :param prefix: Name prefix to filter by. An empty prefix includes HEAD and MERGE_HEAD.
        :param deref: Follow symbolic references.
        :return: Pairs of ref name and value.
        :raises RepositoryNotFoundError: If the repository does not exist."""
        names = [name for name in (HEAD_FILE, MERGE_HEAD_FILE) if (self.repo_path() / name).is_file()]
        names.extend(ref_file.relative_to(self.repo_path()).as_posix()
                     for ref_file in self.refs_dir().rglob('*')
                     if ref_file.is_file() and ref_file.name not in HOUSEKEEPING_FILES)

        return [(name, self.get_ref(name, deref)) for name in sorted(names) if name.startswith(prefix)]

    @requires_repo
    def head_ref(self) -> Ref | None:
        """Get the current HEAD reference of the repository, without following it.

        :return: The current HEAD reference, which can be a HashRef or SymRef.
        :raises NameNotFoundError: If the HEAD ref file does not exist.
        :raises RepositoryNotFoundError: If the repository does not exist."""
        return self.get_ref(HEAD_FILE, deref=False)

    @requires_repo
    def head_commit(self) -> HashRef | None:
        """Return the commit HEAD resolves to.

        :return: The current commit reference, or None if the checked-out branch has no commits yet.
        :raises NameNotFoundError: If the HEAD ref file does not exist.
        :raises RepositoryNotFoundError: If the repository does not exist."""
        resolved = self.get_ref(HEAD_FILE)
        return resolved if isinstance(resolved, HashRef) else None

    @requires_repo
    def current_branch_name(self) -> str | None:
        """Return the name of the checked-out branch, or None if HEAD is detached."""
        head = self.head_ref()
        branch_prefix = f'{REFS_DIR}/{HEADS_DIR}/'
        if isinstance(head, SymRef) and head.startswith(branch_prefix):
            return head.removeprefix(branch_prefix)
        return None

    @requires_repo
    def is_branch(self, name: str) -> bool:
        """Check whether `name` is a branch that points at a commit."""
        branch_path = self._ref_path(branch_ref(name))
        return branch_path.is_file() and read_ref(branch_path) is not None

    @requires_repo
    def resolve_ref(self, ref: Ref | str) -> HashRef:
        """Resolve a name to the commit hash it designates.

        Raw hashes are returned as they are and '@' stands for HEAD. Other names are looked up as
        `<name>`, `refs/<name>`, `refs/tags/<name>` and `refs/heads/<name>`, in that order.

        :param ref: The reference to resolve. This can be a HashRef, SymRef, or a string.
        :return: The resolved HashRef.
        :raises NameNotFoundError: If no candidate resolves to a hash.
        :raises RefError: If the reference type is invalid.
        :raises RepositoryNotFoundError: If the repository does not exist."""
        match ref:
            case HashRef():
                return ref
            case SymRef():
                resolved = self.get_ref(ref)
                if isinstance(resolved, HashRef):
                    return resolved
            case str():
                name = HEAD_FILE if ref == '@' else ref
                if is_hash(name):
                    return HashRef(name)

                candidates = [f'{REFS_DIR}/{name}', f'{REFS_DIR}/{TAGS_DIR}/{name}', f'{REFS_DIR}/{HEADS_DIR}/{name}']
                if name in (HEAD_FILE, MERGE_HEAD_FILE) or name.startswith(f'{REFS_DIR}/'):
                    candidates.insert(0, name)

                for candidate in candidates:
                    resolved = self._follow(candidate)[1]
                    if isinstance(resolved, HashRef):
                        return resolved
            case _:
                msg = f'Invalid reference type: {type(ref)}'
                raise RefError(msg)

        msg = f'Cannot resolve "{ref}" to a commit'
        raise NameNotFoundError(msg)

    @requires_repo
    def save_file_content(self, file: Path) -> Blob:
        """Save the content of a file to the repository.

        :param file: The path to the file to save.
        :return: A Blob object representing the saved file content.
        :raises ValueError: If the file does not exist.
        :raises RepositoryNotFoundError: If the repository does not exist."""
        return save_file_content(self.objects_dir(), file)

    @requires_repo
    def cat_file(self, object_hash: str) -> bytes:
        """Return the payload of a stored object."""
        return read_object(self.objects_dir(), object_hash)

    @requires_repo
    def save_dir(self, path: Path | None = None) -> HashRef:
        """Save the content of a directory to the repository, skipping ignored entries.

        :param path: The path to the directory to save. Defaults to the working directory.
        :return: A HashRef object representing the saved directory tree object.
        :raises NotADirectoryError: If the path is not a directory.
        :raises RepositoryNotFoundError: If the repository does not exist."""
        return build_tree(self.objects_dir(), path or self.working_dir, self.ignore_rules())

    @requires_repo
    def checkout_tree(self, tree_hash: str) -> None:
        """Replace the working directory with the content of a tree. Ignored entries are kept."""
        read_tree(self.objects_dir(), tree_hash, self.working_dir, self.ignore_rules())

    @requires_repo
    def list_tree(self, tree_hash: str) -> list[TreeRecord]:
        return list_tree(self.objects_dir(), tree_hash)

    def _tree_of(self, commit_hash: HashRef | None) -> HashRef | None:
        return load_commit(self.objects_dir(), commit_hash).tree_hash if commit_hash else None

    @requires_repo
    def commit_working_dir(self, message: str) -> HashRef:
        """Commit the current working directory to the repository.

        The commit's parents are the commit HEAD resolves to, if any, followed by MERGE_HEAD while a
        merge is in progress. HEAD then moves to the new commit, advancing the checked-out branch if
        HEAD is attached.

        :param message: The commit message.
        :return: A HashRef object representing the commit reference.
        :raises EmptyMessageError: If the message is empty.
        :raises RepositoryNotFoundError: If the repository does not exist."""
        parents: list[HashRef] = []
        head_commit = self.head_commit()
        if head_commit:
            parents.append(head_commit)

        merge_head = self.get_ref(MERGE_HEAD_FILE) if self.merge_head_file().is_file() else None
        if isinstance(merge_head, HashRef):
            parents.append(merge_head)

        tree_hash = self.save_dir(self.working_dir)
        commit_ref = create_commit(self.objects_dir(), tree_hash, parents, message)
        self.set_ref(HEAD_FILE, commit_ref)

        if merge_head is not None:
            self.delete_ref(MERGE_HEAD_FILE)

        logger.info(f'Committed {commit_ref} with {len(parents)} parent(s)')
        return commit_ref

    def _names_by_commit(self) -> dict[HashRef, list[str]]:
        names: dict[HashRef, list[str]] = {}
        for name, value in self.iter_refs(prefix=''):
            if isinstance(value, HashRef):
                names.setdefault(value, []).append(name)
        return names

    @requires_repo
    def log(self, tip: Ref | str = HEAD_FILE) -> Generator[LogEntry, None, None]:
        """Generate a log of commits reachable from `tip`, breadth-first.

        :param tip: The reference to the commit to start from. Defaults to HEAD.
        :return: A generator yielding LogEntry objects, each carrying the ref names pointing at its commit.
        :raises NameNotFoundError: If `tip` cannot be resolved.
        :raises RepositoryNotFoundError: If the repository does not exist."""
        start = self.head_commit() if tip in (HEAD_FILE, '@') else self.resolve_ref(tip)
        if start is None:
            return

        names = self._names_by_commit()
        for commit_ref in iter_commits(self.objects_dir(), [start]):
            yield LogEntry(commit_ref, load_commit(self.objects_dir(), commit_ref), names.get(commit_ref, []))

    @requires_repo
    def checkout(self, name: str) -> HashRef:
        """Check out a branch, tag or commit.

        Checking out a branch attaches HEAD to it, even when a tag has the same name. Anything else
        detaches HEAD at the commit.

        :return: The checked-out commit.
        :raises NameNotFoundError: If `name` cannot be resolved.
        :raises RepositoryNotFoundError: If the repository does not exist."""
        is_branch = self.is_branch(name)
        commit_ref = self.resolve_ref(branch_ref(name) if is_branch else name)
        self.checkout_tree(load_commit(self.objects_dir(), commit_ref).tree_hash)

        if is_branch:
            self.set_ref(HEAD_FILE, branch_ref(name), deref=False)
            logger.info(f'Switched to branch {name}')
        else:
            self.set_ref(HEAD_FILE, commit_ref, deref=False)
            logger.info(f'HEAD detached at {commit_ref}')

        return commit_ref

    @requires_repo
    def create_branch(self, branch: str, start: Ref | str = HEAD_FILE) -> HashRef | None:
        """Create a new branch pointing at `start`.

        :param branch: The name of the branch to add.
        :param start: Where the branch starts. Defaults to HEAD; an empty HEAD creates an empty branch.
        :return: The commit the branch points at, or None for an empty branch.
        :raises ValueError: If the branch name is empty.
        :raises RepositoryError: If the branch already exists.
        :raises RepositoryNotFoundError: If the repository does not exist."""
        if not branch:
            msg = 'Branch name is required'
            raise ValueError(msg)

        branch_path = self._ref_path(branch_ref(branch))
        if branch_path.exists():
            msg = f'Branch "{branch}" already exists'
            raise RepositoryError(msg)

        target = self.head_commit() if start in (HEAD_FILE, '@') else self.resolve_ref(start)
        write_ref(branch_path, target)
        logger.debug(f'Created branch {branch} at {target}')
        return target

    @requires_repo
    def delete_branch(self, branch: str) -> None:
        """Delete a branch from the repository.

        :param branch: The name of the branch to delete.
        :raises ValueError: If the branch name is empty.
        :raises RepositoryError: If the branch does not exist, is checked out, or is the last branch.
        :raises RepositoryNotFoundError: If the repository does not exist."""
        if not branch:
            msg = 'Branch name is required'
            raise ValueError(msg)

        branch_path = self._ref_path(branch_ref(branch))
        if not branch_path.is_file():
            msg = f'Branch "{branch}" does not exist.'
            raise RepositoryError(msg)
        if branch == self.current_branch_name():
            msg = f'Cannot delete the checked-out branch "{branch}".'
            raise RepositoryError(msg)
        if len(self.branches()) == 1:
            msg = f'Cannot delete the last branch "{branch}".'
            raise RepositoryError(msg)

        branch_path.unlink()

    @requires_repo
    def branches(self) -> list[str]:
        """Get a sorted list of all branch names in the repository.

        :return: A list of branch names.
        :raises RepositoryNotFoundError: If the repository does not exist."""
        branch_prefix = f'{REFS_DIR}/{HEADS_DIR}/'
        return [name.removeprefix(branch_prefix) for name, _ in self.iter_refs(branch_prefix, deref=False)]

    @requires_repo
    def create_tag(self, tag_name: str, target: Ref | str = HEAD_FILE) -> Tag:
        """Create a new tag that points to the given target commit.

        :param tag_name: The name of the tag to create.
        :param target: The reference (commit hash, branch, or tag) the new tag should point to.
        :return: The created Tag.
        :raises ValueError: If the tag name is empty.
        :raises RepositoryError: If the tag already exists or the target cannot be resolved.
        :raises RepositoryNotFoundError: If the repository does not exist."""
        if not tag_name:
            msg = 'Tag name is required'
            raise ValueError(msg)

        tag_path = self._ref_path(tag_ref(tag_name))
        if tag_path.exists():
            msg = f'Tag "{tag_name}" already exists'
            raise RepositoryError(msg)

        resolved_target = self.resolve_ref(target)
        load_commit(self.objects_dir(), resolved_target)

        write_ref(tag_path, resolved_target)
        return Tag(tag_name, resolved_target)

    @requires_repo
    def delete_tag(self, tag_name: str) -> None:
        """Delete a tag from the repository."""
        if not tag_name:
            msg = 'Tag name is required'
            raise ValueError(msg)

        tag_path = self._ref_path(tag_ref(tag_name))
        if not tag_path.is_file():
            msg = f'Tag "{tag_name}" does not exist.'
            raise RepositoryError(msg)

        tag_path.unlink()

    @requires_repo
    def tags(self) -> list[Tag]:
        """Return all tags sorted by name."""
        tag_prefix = f'{REFS_DIR}/{TAGS_DIR}/'
        tags: list[Tag] = []
        for name, value in self.iter_refs(tag_prefix):
            if not isinstance(value, HashRef):
                msg = f'Invalid tag reference stored in {name}'
                raise RepositoryError(msg)
            tags.append(Tag(name.removeprefix(tag_prefix), value))

        return tags

    @requires_repo
    def reset(self, target: Ref | str) -> HashRef:
        """Hard-reset the working directory and HEAD to `target`.

        HEAD is moved through its symbolic chain, so an attached HEAD stays on its branch and the
        branch moves. Any merge in progress is abandoned.

        :return: The commit HEAD now resolves to.
        :raises NameNotFoundError: If `target` cannot be resolved."""
        commit_ref = self.resolve_ref(target)
        self.checkout_tree(load_commit(self.objects_dir(), commit_ref).tree_hash)
        self.set_ref(HEAD_FILE, commit_ref)

        if self.merge_head_file().is_file():
            self.delete_ref(MERGE_HEAD_FILE)

        logger.info(f'HEAD is now at {commit_ref}')
        return commit_ref

    @requires_repo
    def show(self, target: Ref | str = HEAD_FILE) -> ShowResult:
        """Return a commit and the diff it introduces relative to its first parent."""
        commit_ref = self.resolve_ref(target)
        commit = load_commit(self.objects_dir(), commit_ref)
        diff = diff_trees(self.objects_dir(), self._tree_of(commit.parent), commit.tree_hash)
        return ShowResult(commit_ref, commit, diff)

    @requires_repo
    def status(self) -> list[Change]:
        """List the files added, deleted or modified in the working directory relative to HEAD."""
        return changed_paths(self.objects_dir(), self._tree_of(self.head_commit()), self.save_dir())

    @requires_repo
    def diff_working_tree(self) -> bytes:
        """Return the unified diff between HEAD's tree and the working directory."""
        return diff_trees(self.objects_dir(), self._tree_of(self.head_commit()), self.save_dir())

    @requires_repo
    def merge_base(self, commit_ref1: Ref | str, commit_ref2: Ref | str) -> HashRef:
        """Find the common ancestor of two commits closest to the first one.

        :raises NoCommonAncestorError: If the commits share no history."""
        return merge_base(self.objects_dir(), self.resolve_ref(commit_ref1), self.resolve_ref(commit_ref2))

    @requires_repo
    def merge(self, other: Ref | str) -> MergeResult:
        """Merge another commit into HEAD.

        If HEAD is an ancestor of `other`, HEAD simply moves forward. Otherwise the merged content is
        written to the working directory and MERGE_HEAD records `other` until the next commit, which
        gets both parents.

        :param other: The branch, tag or commit to merge.
        :return: The resulting MergeResult, listing conflicted paths.
        :raises MergeError: If a merge is already in progress.
        :raises NoCommonAncestorError: If HEAD and `other` share no history.
        :raises MergeConflictPathError: If a file and a directory clash while writing the result."""
        if self.merge_head_file().is_file():
            msg = 'A merge is already in progress'
            raise MergeError(msg)

        other_ref = self.resolve_ref(other)
        head_ref = self.head_commit()
        base_ref = merge_base(self.objects_dir(), head_ref, other_ref) if head_ref else None

        if head_ref is not None and base_ref == other_ref:
            logger.info(f'Already up to date with {other}')
            return MergeResult(head_ref)

        if head_ref is None or base_ref == head_ref:
            self.checkout_tree(self._tree_of(other_ref))
            self.set_ref(HEAD_FILE, other_ref)
            logger.info(f'Fast-forwarded to {other_ref}')
            return MergeResult(other_ref, fast_forward=True)

        merged = merge_trees(self.objects_dir(), self._tree_of(base_ref), self._tree_of(head_ref),
                             self._tree_of(other_ref), other_label=str(other))
        self.set_ref(MERGE_HEAD_FILE, other_ref, deref=False)
        read_tree_merged(self.working_dir, merged, self.ignore_rules())

        conflicts = conflicted_paths(merged)
        if conflicts:
            logger.warning(f'Merge of {other} left conflicts in: {", ".join(conflicts)}')
        else:
            logger.info(f'Merged {other} into the working directory; commit to conclude the merge')
        return MergeResult(head_ref, conflicts)

    @requires_repo
    def abort_merge(self) -> None:
        """Abandon a merge in progress, restoring HEAD's tree and removing MERGE_HEAD.

        :raises MergeError: If no merge is in progress."""
        if not self.merge_head_file().is_file():
            msg = 'No merge in progress'
            raise MergeError(msg)

        head_tree = self._tree_of(self.head_commit())
        if head_tree:
            self.checkout_tree(head_tree)
        self.delete_ref(MERGE_HEAD_FILE)
        logger.info('Merge aborted')

    @requires_repo
    def rebase(self, target: Ref | str) -> HashRef:
        """Replay the commits of HEAD that are not in `target` on top of `target`.

        Each replayed commit is a three-way merge of its tree with the current tip, against the
        merge base of HEAD and `target`, committed with the replayed commit's message. Conflicts are
        committed with their markers. An attached HEAD's branch is moved to the new tip and HEAD stays attached to it.

        :param target: The branch, tag or commit to rebase onto.
        :return: The new tip.
        :raises RepositoryError: If HEAD has no commits.
        :raises MergeError: If a merge is in progress.
        :raises NoCommonAncestorError: If HEAD and `target` share no history."""
        if self.merge_head_file().is_file():
            msg = 'Cannot rebase while a merge is in progress'
            raise MergeError(msg)

        head_ref = self.head_commit()
        if head_ref is None:
            msg = 'Cannot rebase a branch without commits'
            raise RepositoryError(msg)

        objects_dir = self.objects_dir()
        target_ref = self.resolve_ref(target)
        base_ref = merge_base(objects_dir, head_ref, target_ref)
        if base_ref == target_ref:
            logger.info(f'Already up to date with {target}')
            return head_ref

        base_ancestors = set(ancestors(objects_dir, base_ref))
        to_replay = topological_order(objects_dir, [commit_ref for commit_ref in ancestors(objects_dir, head_ref)
                                                    if commit_ref not in base_ancestors])

        branch = self.current_branch_name()
        base_tree = self._tree_of(base_ref)
        ignore_rules = self.ignore_rules()

        self.set_ref(HEAD_FILE, target_ref, deref=False)
        self.checkout_tree(self._tree_of(target_ref))
        tip = target_ref

        for commit_ref in to_replay:
            commit = load_commit(objects_dir, commit_ref)
            merged = merge_trees(objects_dir, base_tree, self._tree_of(tip), commit.tree_hash,
                                 other_label=commit_ref)
            conflicts = conflicted_paths(merged)
            if conflicts:
                logger.warning(f'Replaying {commit_ref} left conflicts in: {", ".join(conflicts)}')

            read_tree_merged(self.working_dir, merged, ignore_rules)
            tip = create_commit(objects_dir, self.save_dir(), [tip], commit.message)
            self.set_ref(HEAD_FILE, tip, deref=False)

        if branch is not None:
            write_ref(self._ref_path(branch_ref(branch)), tip)
            self.set_ref(HEAD_FILE, branch_ref(branch), deref=False)

        logger.info(f'Rebased {len(to_replay)} commit(s) onto {target_ref}')
        return tip


def branch_ref(branch: str) -> SymRef:
    """Create a symbolic reference for a branch name.

    :param branch: The name of the branch.
    :return: A SymRef object representing the branch reference."""
    return SymRef(f'{REFS_DIR}/{HEADS_DIR}/{branch}')


def tag_ref(tag: str) -> SymRef:
    """Create a symbolic reference for a tag name."""
    return SymRef(f'{REFS_DIR}/{TAGS_DIR}/{tag}')
