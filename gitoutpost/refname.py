"""Validated git branch, ref and remote names."""

from __future__ import annotations

import string
import subprocess
from dataclasses import dataclass

from .errors import InvalidRefName

_REMOTE_CHARS = frozenset(string.ascii_letters + string.digits + "._-")
_HEADS_PREFIX = "refs/heads/"


def _reject_empty_or_leading_dash(name: str) -> None:
    if not name or name.startswith("-"):
        raise InvalidRefName(name)


def _git_check_ref_format(*args: str) -> bool:
    try:
        result = subprocess.run(
            ["git", "check-ref-format", *args],
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            check=False,
        )
    except OSError:
        return False
    return result.returncode == 0


@dataclass(frozen=True, order=True)
class BranchName:
    """A short branch name such as ``feature/foo``."""

    value: str

    @classmethod
    def parse(cls, name: str) -> BranchName:
        name = str(name)
        _reject_empty_or_leading_dash(name)
        if not _git_check_ref_format("--branch", name):
            raise InvalidRefName(name)
        return cls(name)

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, order=True)
class RefName:
    """A full ref name such as ``refs/heads/main``."""

    value: str

    @classmethod
    def parse(cls, name: str) -> RefName:
        name = str(name)
        _reject_empty_or_leading_dash(name)
        if not _git_check_ref_format(name):
            raise InvalidRefName(name)
        return cls(name)

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, order=True)
class RemoteName:
    """A remote name made of ASCII letters, digits, ``.``, ``_`` and ``-``."""

    value: str

    @classmethod
    def parse(cls, name: str) -> RemoteName:
        name = str(name)
        _reject_empty_or_leading_dash(name)
        if not all(char in _REMOTE_CHARS for char in name):
            raise InvalidRefName(name)
        return cls(name)

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class SourceRemoteRef:
    """A ``remote/branch`` reference to a branch of the source repository."""

    remote: RemoteName
    branch: BranchName

    @classmethod
    def parse(cls, value: str) -> SourceRemoteRef:
        value = str(value)
        remote, sep, branch = value.partition("/")
        if not sep:
            raise InvalidRefName(value)
        return cls(remote=RemoteName.parse(remote), branch=BranchName.parse(branch))

    def __str__(self) -> str:
        return f"{self.remote}/{self.branch}"


@dataclass(frozen=True)
class UpstreamRef:
    """The configured upstream of a branch: a remote and a merge ref."""

    remote: RemoteName
    merge_ref: RefName

    def short_branch(self) -> str | None:
        """The branch name if the merge ref is under ``refs/heads/``, else None."""
        merge = self.merge_ref.value
        if merge.startswith(_HEADS_PREFIX):
            return merge[len(_HEADS_PREFIX):]
        return None