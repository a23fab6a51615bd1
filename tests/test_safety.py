from pathlib import Path

import pytest

from gitoutpost.errors import DestinationExists, DestinationInsideRepo, DirtyTree, IoAt
from gitoutpost.git import Git
from gitoutpost.safety import FORCE_HINT, check_clean, check_destination_clean


def _git(path: Path, tmp_root: Path) -> Git:
    config = tmp_root / "empty.gitconfig"
    config.touch()
    return Git(path, {"GIT_CONFIG_GLOBAL": str(config), "GIT_CONFIG_SYSTEM": str(config)})


def _init_repo_at(path: Path, tmp_root: Path) -> Git:
    path.mkdir(parents=True, exist_ok=True)
    git = _git(path, tmp_root)
    git.run_check(["init", "--initial-branch=main"])
    git.run_check(["config", "user.name", "Test Author"])
    git.run_check(["config", "user.email", "test@example.com"])
    return git


@pytest.fixture
def repo(tmp_path):
    path = tmp_path / "repo"
    git = _init_repo_at(path, tmp_path)
    return path, git


def test_check_clean_reports_staged_changes_as_dirty(repo):
    path, git = repo
    (path / "file.txt").write_text("changed")
    git.run_check(["add", "file.txt"])

    with pytest.raises(DirtyTree) as info:
        check_clean(path, git)
    assert info.value.repo == path
    assert info.value.hint == FORCE_HINT


def test_check_clean_reports_unstaged_changes_as_dirty(repo):
    path, git = repo
    (path / "file.txt").write_text("one")
    git.run_check(["add", "file.txt"])
    git.run_check(["commit", "-m", "add file"])
    (path / "file.txt").write_text("changed")

    with pytest.raises(DirtyTree) as info:
        check_clean(path, git)
    assert info.value.repo == path
    assert info.value.hint == "pass --force"


def test_check_clean_reports_untracked_changes_as_dirty(repo):
    path, git = repo
    (path / "untracked.txt").write_text("new")

    with pytest.raises(DirtyTree) as info:
        check_clean(path, git)
    assert info.value.repo == path
    assert info.value.hint == FORCE_HINT


def test_check_clean_allows_clean_work_tree(repo):
    path, git = repo
    assert check_clean(path, git) is None
    assert git.run_capture(["status", "--porcelain=v1"]) == ""


def test_destination_clean_rejects_existing_file_and_non_empty_dir(tmp_path):
    file = tmp_path / "file"
    directory = tmp_path / "dir"
    file.write_text("file")
    directory.mkdir()
    (directory / "child").write_text("child")

    with pytest.raises(DestinationExists) as info:
        check_destination_clean(tmp_path, file)
    assert info.value.path == file

    with pytest.raises(DestinationExists) as info:
        check_destination_clean(tmp_path, directory)
    assert info.value.path == directory


def test_destination_clean_allows_missing_and_empty_dir_outside_repo(tmp_path):
    missing = tmp_path / "missing"
    empty = tmp_path / "empty"
    empty.mkdir()

    assert check_destination_clean(tmp_path, missing) is None
    assert check_destination_clean(tmp_path, empty) is None
    assert not missing.exists()
    assert list(empty.iterdir()) == []


def test_destination_clean_rejects_target_inside_existing_repo(repo):
    path, _ = repo
    dest = path / "nested" / "outpost"

    with pytest.raises(DestinationInsideRepo) as info:
        check_destination_clean(path, dest)
    assert info.value.path == dest


def test_destination_clean_allows_relative_sibling_outside_repo(repo):
    path, _ = repo
    assert check_destination_clean(path, Path("../outpost")) is None
    assert not (path.parent / "outpost").exists()


def test_destination_clean_resolves_relative_path_under_parent_before_exists_check(
    tmp_path, monkeypatch
):
    cwd = tmp_path / "cwd"
    (cwd / "dest").mkdir(parents=True)
    monkeypatch.chdir(cwd)
    dest = Path("dest")
    parent = tmp_path / "parent"
    (parent / dest).mkdir(parents=True)
    (parent / dest / "child").write_text("child")

    with pytest.raises(DestinationExists) as info:
        check_destination_clean(parent, dest)

    assert (cwd / "dest").exists()
    assert info.value.path == dest


def test_destination_clean_with_missing_parent_raises_io_error(tmp_path):
    parent = tmp_path / "absent"

    with pytest.raises(IoAt) as info:
        check_destination_clean(parent, Path("outpost"))
    assert info.value.path == parent