"""Running git commands in a working directory."""

from __future__ import annotations

import os
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Iterable, Mapping, Union

from .errors import GitFailed, IoAt

Arg = Union[str, "os.PathLike[str]"]


@dataclass(frozen=True)
class Git:
    """Runs git in ``cwd`` with extra environment variables."""

    cwd: Path
    env: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "cwd", Path(self.cwd))
        object.__setattr__(self, "env", MappingProxyType(dict(self.env)))

    def with_env(self, key: str, value: str) -> Git:
        """A copy of this invoker with one more environment variable set."""
        env = dict(self.env)
        env[os.fspath(key)] = os.fspath(value)
        return Git(self.cwd, env)

    def _run(self, args: Iterable[Arg]) -> tuple[tuple[str, ...], subprocess.CompletedProcess[str]]:
        argv = tuple(os.fspath(arg) for arg in args)
        env = {**os.environ, **self.env}
        try:
            result = subprocess.run(
                ["git", *argv],
                cwd=self.cwd,
                env=env,
                stdin=subprocess.DEVNULL,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                check=False,
            )
        except OSError as exc:
            raise IoAt(self.cwd, exc) from exc
        return argv, result

    def run_capture(self, args: Iterable[Arg]) -> str:
        """Run git and return its standard output without the trailing newline."""
        argv, result = self._run(args)
        if result.returncode != 0:
            raise GitFailed(argv, result.returncode, result.stderr.rstrip("\r\n"))
        return result.stdout.rstrip("\r\n")

    def run_check(self, args: Iterable[Arg]) -> None:
        """Run git and raise GitFailed if it does not succeed."""
        self.run_capture(args)

    def run_status(self, args: Iterable[Arg]) -> bool:
        """Run git and report whether it exited successfully."""
        _, result = self._run(args)
        return result.returncode == 0