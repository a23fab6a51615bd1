from pathlib import Path

import pytest

from gitoutpost.errors import GitFailed, IoAt
from gitoutpost.git import Git


@pytest.fixture
def hermetic_env(tmp_path):
    empty = tmp_path / "empty.gitconfig"
    empty.write_text("")
    return {
        "GIT_CONFIG_GLOBAL": str(empty),
        "GIT_CONFIG_SYSTEM": str(empty),
        "GIT_AUTHOR_NAME": "Test Author",
        "GIT_AUTHOR_EMAIL": "test@example.com",
        "GIT_COMMITTER_NAME": "Test Committer",
        "GIT_COMMITTER_EMAIL": "test@example.com",
        "GIT_TERMINAL_PROMPT": "0",
    }


@pytest.fixture
def repo(tmp_path, hermetic_env):
    path = tmp_path / "repo"
    path.mkdir()
    git = Git(path, hermetic_env)
    git.run_check(["init", "--initial-branch=main"])
    return git


def test_init_points_head_at_main(repo):
    assert repo.run_capture(["symbolic-ref", "HEAD"]) == "refs/heads/main"


def test_run_capture_strips_trailing_newline(repo):
    repo.run_check(["config", "core.autocrlf", "false"])
    assert repo.run_capture(["config", "core.autocrlf"]) == "false"


def test_commit_and_log(repo):
    repo.run_check(["commit", "--allow-empty", "-m", "initial"])
    assert repo.run_capture(["log", "-1", "--format=%s"]) == "initial"
    assert len(repo.run_capture(["rev-parse", "HEAD"])) == 40


def test_failed_command_raises_git_failed_with_details(repo):
    with pytest.raises(GitFailed) as excinfo:
        repo.run_capture(["config", "--global", "user.name"])
    err = excinfo.value
    assert err.git_args == ("config", "--global", "user.name")
    assert err.code == 1
    assert err.stderr == ""


def test_run_status_reports_success_without_raising(repo):
    assert repo.run_status(["rev-parse", "--verify", "--quiet", "refs/heads/main"]) is False
    repo.run_check(["commit", "--allow-empty", "-m", "initial"])
    assert repo.run_status(["rev-parse", "--verify", "--quiet", "refs/heads/main"]) is True


def test_run_check_raises_on_failure(repo):
    with pytest.raises(GitFailed):
        repo.run_check(["rev-parse", "--verify", "refs/heads/missing"])


def test_missing_working_directory_raises_io_at(tmp_path):
    missing = tmp_path / "does-not-exist"
    with pytest.raises(IoAt) as excinfo:
        Git(missing).run_capture(["status"])
    assert excinfo.value.path == missing


def test_with_env_returns_new_invoker_and_keeps_original(repo):
    changed = repo.with_env("GIT_AUTHOR_NAME", "Someone Else")
    assert repo.env["GIT_AUTHOR_NAME"] == "Test Author"
    assert changed.env["GIT_AUTHOR_NAME"] == "Someone Else"
    assert changed.cwd == repo.cwd


def test_with_env_is_passed_to_git(repo):
    changed = repo.with_env("GIT_AUTHOR_NAME", "Someone Else")
    changed.run_check(["commit", "--allow-empty", "-m", "by someone"])
    assert repo.run_capture(["log", "-1", "--format=%an"]) == "Someone Else"


def test_path_arguments_are_accepted(tmp_path, hermetic_env):
    target = tmp_path / "sub"
    Git(tmp_path, hermetic_env).run_check(["init", "--initial-branch=main", target])
    assert (target / ".git").is_dir()


def test_cwd_is_normalised_to_path(tmp_path):
    git = Git(str(tmp_path))
    assert git.cwd == Path(tmp_path)