"""Command-line interface for bGit."""

import sys
from collections.abc import Callable
from functools import wraps
from pathlib import Path
from typing import ParamSpec, TypeVar

import click

from .constants import DEFAULT_BRANCH
from .exceptions import RepositoryError
from .log import configure_logging
from .ref import HashRef
from .repository import Repository

P = ParamSpec('P')
R = TypeVar('R')


def reports_errors(func: Callable[P, R]) -> Callable[P, R]:
    """Turn library failures into an `Error: <message>` line on stderr and exit status 1."""

    @wraps(func)
    def _run(*args: P.args, **kwargs: P.kwargs) -> R:
        try:
            return func(*args, **kwargs)
        except (RepositoryError, OSError, ValueError) as e:
            click.echo(f'Error: {e}', err=True)
            sys.exit(1)

    return _run


@click.group()
@click.option('--repo-path', type=click.Path(file_okay=False, path_type=Path), default=Path(),
              help='Working directory of the repository.')
@click.option('-v', '--verbose', is_flag=True, help='Show debug logging.')
@click.option('--log-level', default=None, help='Minimum log level, overriding BGIT_LOG_LEVEL.')
@click.pass_context
def cli(ctx: click.Context, repo_path: Path, verbose: bool, log_level: str | None) -> None:
    """bGit: a content-addressed version control system."""
    configure_logging(log_level, verbose)
    ctx.obj = Repository(repo_path)


@cli.command()
@click.option('--default-branch', default=DEFAULT_BRANCH, help='Name of the initial branch.')
@click.pass_obj
@reports_errors
def init(repo: Repository, default_branch: str) -> None:
    """Create an empty repository."""
    repo.init(default_branch)
    click.echo(f'Initialized empty bGit repository in {repo.repo_path()}')


@cli.command('hash-object')
@click.argument('file', type=click.Path(dir_okay=False, path_type=Path))
@click.pass_obj
@reports_errors
def hash_object(repo: Repository, file: Path) -> None:
    """Store a file as a blob and print its hash."""
    click.echo(repo.save_file_content(file).hash)


@cli.command('cat-file')
@click.argument('object_hash')
@click.pass_obj
@reports_errors
def cat_file(repo: Repository, object_hash: str) -> None:
    """Print the payload of an object."""
    click.echo(repo.cat_file(object_hash), nl=False)


@cli.command('write-tree')
@click.pass_obj
@reports_errors
def write_tree(repo: Repository) -> None:
    """Store the working directory as a tree and print its hash."""
    click.echo(repo.save_dir())


@cli.command('read-tree')
@click.argument('tree_hash')
@click.pass_obj
@reports_errors
def read_tree(repo: Repository, tree_hash: str) -> None:
    """Replace the working directory with a tree."""
    repo.checkout_tree(tree_hash)


@cli.command('get-tree')
@click.argument('tree_hash')
@click.pass_obj
@reports_errors
def get_tree(repo: Repository, tree_hash: str) -> None:
    """List one level of a tree."""
    for record in repo.list_tree(tree_hash):
        click.echo(f'{record.mode} {record.type.kind.value} {record.hash}\t{record.name}')


@cli.command()
@click.option('-m', '--message', required=True, help='The commit message.')
@click.pass_obj
@reports_errors
def commit(repo: Repository, message: str) -> None:
    """Commit the working directory."""
    click.echo(repo.commit_working_dir(message))


@cli.command()
@click.argument('tip', default='HEAD')
@click.pass_obj
@reports_errors
def log(repo: Repository, tip: str) -> None:
    """Show the history reachable from TIP."""
    for entry in repo.log(tip):
        refs = f' ({", ".join(entry.refs)})' if entry.refs else ''
        click.echo(f'commit {entry.commit_ref}{refs}')
        if entry.commit.is_merge:
            click.echo(f'Merge: {" ".join(parent[:7] for parent in entry.commit.parents)}')
        click.echo(f'Date:   {entry.commit.timestamp}')
        click.echo()
        for line in entry.commit.message.splitlines():
            click.echo(f'    {line}')
        click.echo()


@cli.command()
@click.argument('name')
@click.pass_obj
@reports_errors
def checkout(repo: Repository, name: str) -> None:
    """Check out a branch, tag or commit."""
    repo.checkout(name)


@cli.command()
@click.argument('name', required=False)
@click.argument('target', default='HEAD')
@click.option('-d', '--delete', is_flag=True, help='Delete the tag.')
@click.pass_obj
@reports_errors
def tag(repo: Repository, name: str | None, target: str, delete: bool) -> None:
    """List tags, or create the tag NAME pointing at TARGET."""
    if name is None:
        for existing in repo.tags():
            click.echo(f'{existing.name} {existing.target}')
    elif delete:
        repo.delete_tag(name)
    else:
        repo.create_tag(name, target)


@cli.command()
@click.argument('name', required=False)
@click.argument('start', default='HEAD')
@click.option('-d', '--delete', is_flag=True, help='Delete the branch.')
@click.pass_obj
@reports_errors
def branch(repo: Repository, name: str | None, start: str, delete: bool) -> None:
    """List branches, or create the branch NAME starting at START."""
    if name is None:
        current = repo.current_branch_name()
        for existing in repo.branches():
            marker = '*' if existing == current else ' '
            click.echo(f'{marker} {existing}')
    elif delete:
        repo.delete_branch(name)
    else:
        repo.create_branch(name, start)


@cli.command()
@click.pass_obj
@reports_errors
def status(repo: Repository) -> None:
    """Show files changed since the HEAD commit."""
    current = repo.current_branch_name()
    click.echo(f'On branch {current}' if current else f'HEAD detached at {repo.head_commit()}')
    if repo.merge_head_file().is_file():
        click.echo('Merge in progress; commit to conclude it')
    for change in repo.status():
        click.echo(f'{change.status.value}: {change.path}')


@cli.command()
@click.argument('target')
@click.pass_obj
@reports_errors
def reset(repo: Repository, target: str) -> None:
    """Reset HEAD and the working directory to TARGET."""
    click.echo(f'HEAD is now at {repo.reset(target)}')


@cli.command()
@click.argument('target', default='HEAD')
@click.pass_obj
@reports_errors
def show(repo: Repository, target: str) -> None:
    """Show a commit and the changes it introduced."""
    result = repo.show(target)
    click.echo(f'commit {result.commit_ref}')
    click.echo(f'Date:   {result.commit.timestamp}')
    click.echo()
    for line in result.commit.message.splitlines():
        click.echo(f'    {line}')
    click.echo()
    click.echo(result.diff, nl=False)


@cli.command()
@click.pass_obj
@reports_errors
def diff(repo: Repository) -> None:
    """Show changes in the working directory relative to HEAD."""
    click.echo(repo.diff_working_tree(), nl=False)


@cli.command()
@click.argument('other', required=False)
@click.option('--abort', is_flag=True, help='Abandon the merge in progress.')
@click.pass_obj
@reports_errors
def merge(repo: Repository, other: str | None, abort: bool) -> None:
    """Merge OTHER into HEAD."""
    if abort:
        repo.abort_merge()
        return
    if other is None:
        msg = 'Nothing to merge'
        raise ValueError(msg)

    result = repo.merge(other)
    if result.fast_forward:
        click.echo(f'Fast-forward to {result.commit_hash}')
    elif result.conflicts:
        for path in result.conflicts:
            click.echo(f'CONFLICT: {path}')
        click.echo('Fix the conflicts and commit the result')
    elif repo.merge_head_file().is_file():
        click.echo('Merged into the working directory; commit to conclude the merge')
    else:
        click.echo('Already up to date')


@cli.command()
@click.argument('target')
@click.pass_obj
@reports_errors
def rebase(repo: Repository, target: str) -> None:
    """Replay HEAD's commits on top of TARGET."""
    click.echo(repo.rebase(target))


@cli.command('merge-base')
@click.argument('first')
@click.argument('second')
@click.pass_obj
@reports_errors
def merge_base(repo: Repository, first: str, second: str) -> None:
    """Print the common ancestor of two commits."""
    click.echo(repo.merge_base(first, second))


@cli.command('iter-refs')
@click.option('--prefix', default='', help='Only list refs whose names start with PREFIX.')
@click.option('--no-deref', is_flag=True, help='Print symbolic refs as they are stored.')
@click.pass_obj
@reports_errors
def iter_refs(repo: Repository, prefix: str, no_deref: bool) -> None:
    """List references and their values."""
    for name, value in repo.iter_refs(prefix, deref=not no_deref):
        shown = value if isinstance(value, HashRef) or value is None else f'ref: {value}'
        click.echo(f'{name} {shown or ""}'.rstrip())


if __name__ == '__main__':
    cli()
