"""Exceptions raised by the outpost core."""

from __future__ import annotations

from pathlib import Path
from typing import Sequence


class OutpostError(Exception):
    """Base class for every error the package raises."""


class InvalidRefName(OutpostError):
    """A branch, ref or remote name failed validation."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"invalid ref name: {name!r}")


class GitFailed(OutpostError):
    """A git command exited with a non-zero status."""

    def __init__(self, args: Sequence[str], code: int, stderr: str) -> None:
        self.args_list = tuple(args)
        self.code = code
        self.stderr = stderr
        message = f"git {' '.join(self.args_list)} failed with exit code {code}"
        if stderr:
            message = f"{message}: {stderr}"
        super().__init__(message)

    @property
    def git_args(self) -> tuple[str, ...]:
        """The arguments git was started with."""
        return self.args_list


class NotARepo(OutpostError):
    """The path is not inside a git repository."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        super().__init__(f"not a git repository: {self.path}")


class IoAt(OutpostError):
    """An I/O operation failed at a specific path."""

    def __init__(self, path: Path, source: BaseException) -> None:
        self.path = Path(path)
        self.source = source
        super().__init__(f"I/O error at {self.path}: {source}")
        self.__cause__ = source


class BadRegistry(OutpostError):
    """The registry file could not be understood."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"bad registry at {self.path}: {reason}")


class RegistryEntryNotFound(OutpostError):
    """No registry entry exists for the path."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        super().__init__(f"no registry entry for {self.path}")


class RegistryEntryNotManaged(OutpostError):
    """The path is not an outpost managed by this source repository."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        super().__init__(f"{self.path} is not an outpost managed by this source repository")


class BranchNotFound(OutpostError):
    """A branch does not exist in a repository."""

    def __init__(self, branch: str, repo: Path) -> None:
        self.branch = branch
        self.repo = Path(repo)
        super().__init__(f"branch {branch} not found in {self.repo}")


class Divergence(OutpostError):
    """A branch and its counterpart have diverged."""

    def __init__(self, branch: str) -> None:
        self.branch = branch
        super().__init__(f"branch {branch} has diverged")


class DirtyTree(OutpostError):
    """A work tree has uncommitted or untracked changes."""

    def __init__(self, repo: Path, hint: str) -> None:
        self.repo = Path(repo)
        self.hint = hint
        super().__init__(f"{self.repo} has uncommitted changes; {hint}")


class DestinationExists(OutpostError):
    """The destination path already exists and is not an empty directory."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        super().__init__(f"destination already exists: {self.path}")


class DestinationInsideRepo(OutpostError):
    """The destination path lies inside an existing git repository."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        super().__init__(f"destination is inside an existing repository: {self.path}")