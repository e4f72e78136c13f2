import sys
from collections.abc import Callable, Generator
from pathlib import Path

from click.testing import CliRunner, Result
from libbgit.cli import cli
from libbgit.constants import DEFAULT_BRANCH
from libbgit.repository import Repository
from loguru import logger
from pytest import fixture


@fixture(autouse=True)
def restore_logging() -> Generator[None, None, None]:
    yield
    logger.remove()
    logger.add(sys.stderr)


@fixture
def bgit(temp_repo_dir: Path) -> Callable[..., Result]:
    runner = CliRunner()

    def _invoke(*args: str) -> Result:
        return runner.invoke(cli, ['--repo-path', str(temp_repo_dir), '--log-level', 'CRITICAL', *args])

    return _invoke


def test_init_and_commit(bgit: Callable[..., Result], temp_repo_dir: Path) -> None:
    assert bgit('init').exit_code == 0
    (temp_repo_dir / 'file.txt').write_text('hello\n')

    result = bgit('commit', '-m', 'Initial commit')

    assert result.exit_code == 0
    assert Repository(temp_repo_dir).head_commit() == result.output.strip()


def test_errors_go_to_stderr_with_exit_code(bgit: Callable[..., Result]) -> None:
    result = bgit('log')

    assert result.exit_code == 1
    assert 'Error: Repository not initialized' in result.output


def test_init_twice_fails(bgit: Callable[..., Result]) -> None:
    bgit('init')

    result = bgit('init')

    assert result.exit_code == 1
    assert 'Error: Repository already exists' in result.output


def test_hash_object_and_cat_file(bgit: Callable[..., Result], temp_repo_dir: Path) -> None:
    bgit('init')
    (temp_repo_dir / 'file.txt').write_text('content\n')

    object_hash = bgit('hash-object', str(temp_repo_dir / 'file.txt')).output.strip()
    result = bgit('cat-file', object_hash)

    assert result.exit_code == 0
    assert result.output == 'content\n'


def test_write_tree_get_tree_read_tree(bgit: Callable[..., Result], temp_repo_dir: Path) -> None:
    bgit('init')
    (temp_repo_dir / 'file.txt').write_text('content\n')

    tree_hash = bgit('write-tree').output.strip()
    listing = bgit('get-tree', tree_hash).output

    assert listing.startswith('100644 blob ')
    assert listing.rstrip().endswith('\tfile.txt')

    (temp_repo_dir / 'file.txt').unlink()
    assert bgit('read-tree', tree_hash).exit_code == 0
    assert (temp_repo_dir / 'file.txt').read_text() == 'content\n'


def test_log_shows_refs_and_messages(bgit: Callable[..., Result], temp_repo_dir: Path) -> None:
    bgit('init')
    (temp_repo_dir / 'file.txt').write_text('one\n')
    bgit('commit', '-m', 'First')
    (temp_repo_dir / 'file.txt').write_text('two\n')
    bgit('commit', '-m', 'Second')

    output = bgit('log').output

    assert output.index('Second') < output.index('First')
    assert f'(HEAD, refs/heads/{DEFAULT_BRANCH})' in output


def test_branch_checkout_and_status(bgit: Callable[..., Result], temp_repo_dir: Path) -> None:
    bgit('init')
    (temp_repo_dir / 'file.txt').write_text('one\n')
    bgit('commit', '-m', 'First')

    assert bgit('branch', 'feature').exit_code == 0
    assert bgit('checkout', 'feature').exit_code == 0
    assert bgit('branch').output == f'* feature\n  {DEFAULT_BRANCH}\n'

    (temp_repo_dir / 'new.txt').write_text('new\n')
    status = bgit('status').output

    assert 'On branch feature' in status
    assert 'added: new.txt' in status


def test_tag_diff_show_reset(bgit: Callable[..., Result], temp_repo_dir: Path) -> None:
    bgit('init')
    (temp_repo_dir / 'file.txt').write_text('Initial content\n')
    first = bgit('commit', '-m', 'First').output.strip()
    bgit('tag', 'v1')
    (temp_repo_dir / 'file.txt').write_text('Updated content\n')

    assert bgit('tag').output == f'v1 {first}\n'
    assert '+Updated content' in bgit('diff').output

    bgit('commit', '-m', 'Second')
    assert '-Initial content' in bgit('show').output

    result = bgit('reset', 'v1')
    assert result.output == f'HEAD is now at {first}\n'
    assert (temp_repo_dir / 'file.txt').read_text() == 'Initial content\n'


def test_merge_conflict_and_abort(bgit: Callable[..., Result], temp_repo_dir: Path) -> None:
    bgit('init')
    (temp_repo_dir / 'file.txt').write_text('base\n')
    bgit('commit', '-m', 'Base')
    bgit('branch', 'feature')
    (temp_repo_dir / 'file.txt').write_text('master\n')
    bgit('commit', '-m', 'Master')
    bgit('checkout', 'feature')
    (temp_repo_dir / 'file.txt').write_text('feature\n')
    bgit('commit', '-m', 'Feature')
    bgit('checkout', DEFAULT_BRANCH)

    result = bgit('merge', 'feature')

    assert result.exit_code == 0
    assert 'CONFLICT: file.txt' in result.output
    assert bgit('merge', '--abort').exit_code == 0
    assert (temp_repo_dir / 'file.txt').read_text() == 'master\n'


def test_rebase_and_merge_base(bgit: Callable[..., Result], temp_repo_dir: Path) -> None:
    bgit('init')
    (temp_repo_dir / 'base.txt').write_text('base\n')
    base = bgit('commit', '-m', 'Base').output.strip()
    bgit('branch', 'feature')
    (temp_repo_dir / 'master.txt').write_text('master\n')
    bgit('commit', '-m', 'Master')
    bgit('checkout', 'feature')
    (temp_repo_dir / 'feature.txt').write_text('feature\n')
    bgit('commit', '-m', 'Feature')

    assert bgit('merge-base', 'feature', DEFAULT_BRANCH).output.strip() == base

    result = bgit('rebase', DEFAULT_BRANCH)

    assert result.exit_code == 0
    assert (temp_repo_dir / 'master.txt').exists()
    assert (temp_repo_dir / 'feature.txt').exists()


def test_iter_refs(bgit: Callable[..., Result], temp_repo_dir: Path) -> None:
    bgit('init')
    (temp_repo_dir / 'file.txt').write_text('content\n')
    commit = bgit('commit', '-m', 'Commit').output.strip()

    assert bgit('iter-refs', '--prefix', 'refs/').output == f'refs/heads/{DEFAULT_BRANCH} {commit}\n'
    assert bgit('iter-refs', '--no-deref', '--prefix', 'HEAD').output == f'HEAD ref: refs/heads/{DEFAULT_BRANCH}\n'


def test_unknown_name_fails(bgit: Callable[..., Result]) -> None:
    bgit('init')

    result = bgit('checkout', 'missing')

    assert result.exit_code == 1
    assert 'Error: ' in result.output
