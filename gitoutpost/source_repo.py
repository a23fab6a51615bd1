"""The source repository that outposts are created from."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Mapping

from .errors import BranchNotFound, Divergence, GitFailed, IoAt, NotARepo, OutpostError
from .git import Git
from .refname import BranchName, RefName, RemoteName, UpstreamRef
from .registry import Registry, RegistryMut

_WORKTREE_PREFIX = "worktree "
_BRANCH_PREFIX = "branch refs/heads/"


def _canonicalize(path: os.PathLike[str] | str) -> Path:
    try:
        return Path(path).resolve(strict=True)
    except OSError as exc:
        raise IoAt(Path(path), exc) from exc


def _canonicalize_git_path(start: Path, value: str) -> Path:
    path = Path(value)
    return _canonicalize(path if path.is_absolute() else start / path)


def _capture_in_repo(git: Git, args: list[str], start: Path) -> str:
    try:
        return git.run_capture(args)
    except GitFailed as exc:
        raise NotARepo(start) from exc


def current_branch(git: Git, repo: os.PathLike[str] | str) -> BranchName:
    """The branch checked out in ``git``'s work tree; BranchNotFound on a detached HEAD."""
    try:
        name = git.run_capture(["symbolic-ref", "--quiet", "--short", "HEAD"])
    except GitFailed as exc:
        raise BranchNotFound("HEAD", Path(repo)) from exc
    return BranchName.parse(name)


def is_dirty(git: Git) -> bool:
    """Whether the work tree has staged, unstaged or untracked changes."""
    return bool(git.run_capture(["status", "--porcelain=v1", "--untracked-files=normal"]))


def read_optional_config(git: Git, key: str) -> str | None:
    """The local config value for ``key``, or None if it is not set."""
    if git.run_status(["config", "--local", "--get", key]):
        return git.run_capture(["config", "--local", "--get", key])
    return None


def rev_parse(git: Git, reference: str) -> str:
    """The object id that ``reference`` names."""
    return git.run_capture(["rev-parse", reference])


def is_ancestor(git: Git, ancestor: str, descendant: str) -> bool:
    """Whether ``ancestor`` is an ancestor of ``descendant``."""
    return git.run_status(["merge-base", "--is-ancestor", ancestor, descendant])


class SourceRepo:
    """A git repository whose branches outposts track."""

    def __init__(
        self,
        work_tree: Path,
        git_dir: Path,
        git_common_dir: Path,
        env: Mapping[str, str] | None = None,
    ) -> None:
        self._work_tree = Path(work_tree)
        self._git_dir = Path(git_dir)
        self._git_common_dir = Path(git_common_dir)
        self._env = dict(env or {})
        self._git = Git(self._work_tree, self._env)

    @classmethod
    def discover(
        cls, start: os.PathLike[str] | str, env: Mapping[str, str] | None = None
    ) -> SourceRepo:
        """Open the repository that contains ``start``."""
        start = Path(start)
        work_tree = _capture_in_repo(Git(start, env or {}), ["rev-parse", "--show-toplevel"], start)
        return cls.at(work_tree, env)

    @classmethod
    def at(cls, path: os.PathLike[str] | str, env: Mapping[str, str] | None = None) -> SourceRepo:
        """Open the repository at ``path`` with canonical paths."""
        start = Path(path)
        env = dict(env or {})
        git = Git(start, env)
        work_tree_raw = _capture_in_repo(git, ["rev-parse", "--show-toplevel"], start)
        git_dir_raw = _capture_in_repo(git, ["rev-parse", "--git-dir"], start)
        common_dir_raw = _capture_in_repo(git, ["rev-parse", "--git-common-dir"], start)
        return cls(
            _canonicalize(work_tree_raw),
            _canonicalize_git_path(start, git_dir_raw),
            _canonicalize_git_path(start, common_dir_raw),
            env,
        )

    @classmethod
    def from_storage_paths(
        cls, work_tree: os.PathLike[str] | str, git_dir: os.PathLike[str] | str
    ) -> SourceRepo:
        """A source repository from explicit storage paths, without asking git."""
        work_tree_path = _canonicalize(work_tree)
        git_dir_path = _canonicalize(git_dir)
        return cls(work_tree_path, git_dir_path, git_dir_path)

    @property
    def work_tree(self) -> Path:
        return self._work_tree

    @property
    def git_dir(self) -> Path:
        return self._git_dir

    @property
    def git_common_dir(self) -> Path:
        return self._git_common_dir

    @property
    def env(self) -> dict[str, str]:
        return dict(self._env)

    @property
    def git(self) -> Git:
        return self._git

    @property
    def registry_path(self) -> Path:
        return self._work_tree / ".outpost" / "registry.json"

    @property
    def local_exclude_path(self) -> Path:
        return self._git_dir / "info" / "exclude"

    def current_branch(self) -> BranchName:
        """The branch checked out in the main work tree."""
        return current_branch(self._git, self._work_tree)

    def checked_out_branches(self) -> list[BranchName]:
        """Every branch checked out here or in a linked worktree, current branch first."""
        branches: list[BranchName] = []
        try:
            branches.append(self.current_branch())
        except OutpostError:
            pass
        output = self._git.run_capture(["worktree", "list", "--porcelain"])
        for line in output.splitlines():
            if line.startswith(_BRANCH_PREFIX):
                branch = BranchName.parse(line[len(_BRANCH_PREFIX):])
                if branch not in branches:
                    branches.append(branch)
        return branches

    def checked_out_worktree_for(self, branch: BranchName) -> Path | None:
        """The canonical path of the worktree that has ``branch`` checked out, if any."""
        output = self._git.run_capture(["worktree", "list", "--porcelain"])
        current_path: Path | None = None
        for line in output.splitlines():
            if line.startswith(_WORKTREE_PREFIX):
                current_path = _canonicalize(line[len(_WORKTREE_PREFIX):])
            elif line.startswith(_BRANCH_PREFIX) and line[len(_BRANCH_PREFIX):] == branch.value:
                return current_path
        return None

    def is_dirty(self) -> bool:
        """Whether the main work tree has changes."""
        return is_dirty(self._git)

    def upstream_for(self, branch: BranchName) -> UpstreamRef | None:
        """The configured upstream of ``branch``, or None if it has none."""
        remote = read_optional_config(self._git, f"branch.{branch.value}.remote")
        if remote is None:
            return None
        merge_ref = read_optional_config(self._git, f"branch.{branch.value}.merge")
        if merge_ref is None:
            return None
        return UpstreamRef(remote=RemoteName.parse(remote), merge_ref=RefName.parse(merge_ref))

    def branch_exists(self, branch: BranchName) -> bool:
        """Whether a local branch named ``branch`` exists."""
        return self._git.run_status(
            ["rev-parse", "--verify", "--quiet", f"refs/heads/{branch.value}"]
        )

    def fast_forward_branch_from_origin(self, branch: BranchName) -> None:
        """Fetch ``branch`` from origin and fast-forward the local branch to it."""
        if not self.branch_exists(branch):
            raise BranchNotFound(branch.value, self._work_tree)

        local_ref = f"refs/heads/{branch.value}"
        remote_ref = f"refs/remotes/origin/{branch.value}"
        self._git.run_check(["fetch", "origin", f"{branch.value}:{remote_ref}"])

        local_oid = rev_parse(self._git, local_ref)
        remote_oid = rev_parse(self._git, remote_ref)
        if local_oid == remote_oid or is_ancestor(self._git, remote_oid, local_oid):
            return
        if not is_ancestor(self._git, local_oid, remote_oid):
            raise Divergence(branch.value)

        worktree = self.checked_out_worktree_for(branch)
        if worktree is not None:
            Git(worktree, self._env).run_check(["merge", "--ff-only", remote_ref])
        else:
            self._git.run_check(["update-ref", local_ref, remote_oid, local_oid])

    def registry(self) -> Registry:
        """A snapshot of this repository's outpost registry."""
        return Registry.load(self)

    def registry_mut(self) -> RegistryMut:
        """This repository's outpost registry, opened for changes."""
        return RegistryMut.load(self)