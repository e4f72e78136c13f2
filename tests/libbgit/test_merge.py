from pathlib import Path

from libbgit.exceptions import UnexpectedSubmoduleError
from libbgit.merge import (DIRECTORY, Clean, Conflicted, conflicted_paths, fast_forward_eligible, merge_blobs,
                           merge_blobs_three_way, merge_trees)
from libbgit.objects import ObjectKind, Tree, TreeRecord, TreeRecordType
from libbgit.plumbing import create_commit, save_object, save_tree
from libbgit.ref import HashRef
from libbgit.worktree import build_tree
from pytest import fixture, raises


@fixture
def objects_dir(tmp_path: Path) -> Path:
    return tmp_path / 'objects'


def _tree(objects_dir: Path, root: Path, files: dict[str, str]) -> HashRef:
    root.mkdir(parents=True)
    for rel_path, content in files.items():
        path = root / rel_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
    return build_tree(objects_dir, root)


def test_merge_blob_triage_identical_sides() -> None:
    assert merge_blobs_three_way(b'x\n', b'x\n', b'x\n') == Clean(b'x\n')
    assert merge_blobs_three_way(b'base\n', b'same\n', b'same\n') == Clean(b'same\n')


def test_merge_blob_triage_one_side_unchanged() -> None:
    assert merge_blobs_three_way(b'base\n', b'base\n', b'other\n') == Clean(b'other\n')
    assert merge_blobs_three_way(b'base\n', b'head\n', b'base\n') == Clean(b'head\n')


def test_merge_blob_absent_sides_read_as_empty() -> None:
    assert merge_blobs_three_way(None, None, b'new\n') == Clean(b'new\n')
    assert merge_blobs_three_way(b'old\n', b'old\n', None) == Clean(b'')


def test_merge_blob_non_overlapping_changes() -> None:
    base = b'line 1\nline 2\nline 3\nline 4\nline 5\n'
    head = b'line 1 head\nline 2\nline 3\nline 4\nline 5\n'
    other = b'line 1\nline 2\nline 3\nline 4\nline 5 other\n'

    assert merge_blobs_three_way(base, head, other) == Clean(b'line 1 head\nline 2\nline 3\nline 4\nline 5 other\n')


def test_merge_blob_identical_changes_taken_once() -> None:
    base = b'a\nb\nc\n'
    head = b'a\nB\nc\nd\n'
    other = b'a\nB\nc\n'

    assert merge_blobs_three_way(base, head, other) == Clean(b'a\nB\nc\nd\n')


def test_merge_blob_conflict_markers() -> None:
    base = b'start\nmiddle\nend\n'
    head = b'start\nhead change\nend\n'
    other = b'start\nother change\nend\n'

    result = merge_blobs_three_way(base, head, other, other_label='feature')

    assert result == Conflicted(b'start\n'
                                b'<<<<<<< HEAD\n'
                                b'head change\n'
                                b'=======\n'
                                b'other change\n'
                                b'>>>>>>> feature\n'
                                b'end\n')


def test_merge_blob_conflict_without_trailing_newline() -> None:
    result = merge_blobs_three_way(b'base', b'head', b'other')

    assert isinstance(result, Conflicted)
    assert b'head\n=======\nother\n>>>>>>>' in result.content


def test_merge_blobs_two_way() -> None:
    assert merge_blobs(b'same\n', b'same\n') == Clean(b'same\n')

    result = merge_blobs(b'a\nhead\nc\n', b'a\nother\nc\n', other_label='branch')

    assert result == Conflicted(b'a\n<<<<<<< HEAD\nhead\n=======\nother\n>>>>>>> branch\nc\n')


def test_merge_trees_takes_one_sided_changes(objects_dir: Path, tmp_path: Path) -> None:
    base = _tree(objects_dir, tmp_path / 'base', {'a.txt': 'a\n', 'b.txt': 'b\n', 'gone.txt': 'gone\n'})
    head = _tree(objects_dir, tmp_path / 'head', {'a.txt': 'a head\n', 'b.txt': 'b\n'})
    other = _tree(objects_dir, tmp_path / 'other', {'a.txt': 'a\n', 'b.txt': 'b other\n', 'gone.txt': 'gone\n',
                                                     'dir/new.txt': 'new\n'})

    merged = merge_trees(objects_dir, base, head, other)

    assert merged == {
        'a.txt': Clean(b'a head\n'),
        'b.txt': Clean(b'b other\n'),
        'dir': DIRECTORY,
        'dir/new.txt': Clean(b'new\n'),
    }


def test_merge_trees_delete_on_both_sides(objects_dir: Path, tmp_path: Path) -> None:
    base = _tree(objects_dir, tmp_path / 'base', {'keep.txt': 'k\n', 'dir/gone.txt': 'gone\n'})
    head = _tree(objects_dir, tmp_path / 'head', {'keep.txt': 'k\n'})
    other = _tree(objects_dir, tmp_path / 'other', {'keep.txt': 'k\n'})

    assert merge_trees(objects_dir, base, head, other) == {'keep.txt': Clean(b'k\n')}


def test_merge_trees_reports_conflicts(objects_dir: Path, tmp_path: Path) -> None:
    base = _tree(objects_dir, tmp_path / 'base', {'file.txt': 'base\n'})
    head = _tree(objects_dir, tmp_path / 'head', {'file.txt': 'head\n'})
    other = _tree(objects_dir, tmp_path / 'other', {'file.txt': 'other\n'})

    merged = merge_trees(objects_dir, base, head, other)

    assert isinstance(merged['file.txt'], Conflicted)
    assert conflicted_paths(merged) == ['file.txt']


def test_merge_trees_without_base(objects_dir: Path, tmp_path: Path) -> None:
    head = _tree(objects_dir, tmp_path / 'head', {'same.txt': 's\n', 'only_head.txt': 'h\n', 'both.txt': 'h\n'})
    other = _tree(objects_dir, tmp_path / 'other', {'same.txt': 's\n', 'only_other.txt': 'o\n', 'both.txt': 'o\n'})

    merged = merge_trees(objects_dir, None, head, other)

    assert merged['same.txt'] == Clean(b's\n')
    assert merged['only_head.txt'] == Clean(b'h\n')
    assert merged['only_other.txt'] == Clean(b'o\n')
    assert isinstance(merged['both.txt'], Conflicted)


def test_merge_trees_takes_directory_replaced_by_file(objects_dir: Path, tmp_path: Path) -> None:
    base = _tree(objects_dir, tmp_path / 'base', {'d/x.txt': 'x\n'})
    head = _tree(objects_dir, tmp_path / 'head', {'d': 'head file\n'})
    other = _tree(objects_dir, tmp_path / 'other', {'d/x.txt': 'x\n'})

    assert merge_trees(objects_dir, base, head, other) == {'d': Clean(b'head file\n')}
    assert merge_trees(objects_dir, base, other, head) == {'d': Clean(b'head file\n')}


def test_merge_trees_takes_file_replaced_by_directory(objects_dir: Path, tmp_path: Path) -> None:
    base = _tree(objects_dir, tmp_path / 'base', {'d': 'file\n', 'k': 'k\n'})
    head = _tree(objects_dir, tmp_path / 'head', {'d': 'file\n', 'k': 'k head\n'})
    other = _tree(objects_dir, tmp_path / 'other', {'d/y.txt': 'y\n', 'k': 'k\n'})

    assert merge_trees(objects_dir, base, head, other) == {
        'd': DIRECTORY,
        'd/y.txt': Clean(b'y\n'),
        'k': Clean(b'k head\n'),
    }


def test_merge_trees_file_and_directory_added_at_same_path(objects_dir: Path, tmp_path: Path) -> None:
    base = _tree(objects_dir, tmp_path / 'base', {'k': 'k\n'})
    head = _tree(objects_dir, tmp_path / 'head', {'k': 'k\n', 'd': 'head file\n'})
    other = _tree(objects_dir, tmp_path / 'other', {'k': 'k\n', 'd/y.txt': 'y\n'})

    merged = merge_trees(objects_dir, base, head, other, other_label='feature/x')

    assert merged == {
        'd': DIRECTORY,
        'd/y.txt': Clean(b'y\n'),
        'd~HEAD': Conflicted(b'head file\n'),
        'k': Clean(b'k\n'),
    }
    assert conflicted_paths(merged) == ['d~HEAD']


def test_merge_trees_file_and_directory_without_base(objects_dir: Path, tmp_path: Path) -> None:
    head = _tree(objects_dir, tmp_path / 'head', {'d/y.txt': 'y\n'})
    other = _tree(objects_dir, tmp_path / 'other', {'d': 'other file\n'})

    merged = merge_trees(objects_dir, None, head, other, other_label='feature/x')

    assert merged['d'] == DIRECTORY
    assert merged['d/y.txt'] == Clean(b'y\n')
    assert merged['d~feature_x'] == Conflicted(b'other file\n')


def test_merge_trees_directory_replaced_by_different_files(objects_dir: Path, tmp_path: Path) -> None:
    base = _tree(objects_dir, tmp_path / 'base', {'d/x.txt': 'x\n'})
    head = _tree(objects_dir, tmp_path / 'head', {'d': 'head\n'})
    other = _tree(objects_dir, tmp_path / 'other', {'d': 'other\n'})

    merged = merge_trees(objects_dir, base, head, other)

    assert list(merged) == ['d']
    assert isinstance(merged['d'], Conflicted)


def test_merge_trees_rejects_submodules(objects_dir: Path) -> None:
    gitlink = TreeRecord(TreeRecordType.COMMIT, save_object(objects_dir, ObjectKind.BLOB, b'x'), 'sub')
    head = save_tree(objects_dir, Tree({'sub': gitlink}))
    other = save_tree(objects_dir, Tree())

    with raises(UnexpectedSubmoduleError):
        merge_trees(objects_dir, other, head, other)


def test_fast_forward_eligible(objects_dir: Path) -> None:
    tree_hash = save_tree(objects_dir, Tree())
    first = create_commit(objects_dir, tree_hash, [], 'first')
    second = create_commit(objects_dir, tree_hash, [first], 'second')

    assert fast_forward_eligible(objects_dir, first, second)
    assert not fast_forward_eligible(objects_dir, second, first)
