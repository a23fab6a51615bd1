"""Safety checks run before outposts are created or removed."""

from __future__ import annotations

import os
from pathlib import Path

from .errors import DestinationExists, DestinationInsideRepo, DirtyTree, GitFailed, IoAt
from .git import Git

FORCE_HINT = "pass --force"


def check_clean(work_tree: os.PathLike[str] | str, git: Git) -> None:
    """Raise DirtyTree if the work tree has staged, unstaged or untracked changes."""
    status = git.run_capture(["status", "--porcelain=v1", "--untracked-files=normal"])
    if status:
        raise DirtyTree(Path(work_tree), FORCE_HINT)


def check_destination_clean(
    parent: os.PathLike[str] | str, dest: os.PathLike[str] | str
) -> None:
    """Make sure ``dest`` can hold a new outpost.

    A relative ``dest`` is taken relative to ``parent``. The destination must be
    missing or an empty directory, and must not lie inside the repository that
    contains ``parent``.
    """
    parent = Path(parent)
    dest = Path(dest)
    dest_path = _resolve_destination(parent, dest)

    if dest_path.exists():
        if not dest_path.is_dir() or _has_entries(dest_path):
            raise DestinationExists(dest)

    repo = _containing_repo(parent)
    if repo is not None and dest_path != repo and dest_path.is_relative_to(repo):
        raise DestinationInsideRepo(dest)


def _canonicalize(path: Path) -> Path:
    try:
        return path.resolve(strict=True)
    except OSError as exc:
        raise IoAt(path, exc) from exc


def _containing_repo(parent: Path) -> Path | None:
    try:
        top = Git(parent).run_capture(["rev-parse", "--show-toplevel"])
    except GitFailed:
        return None
    return _canonicalize(Path(top))


def _has_entries(path: Path) -> bool:
    try:
        with os.scandir(path) as entries:
            return next(entries, None) is not None
    except OSError as exc:
        raise IoAt(path, exc) from exc


def _resolve_destination(parent: Path, dest: Path) -> Path:
    anchored = dest if dest.is_absolute() else _canonicalize(parent) / dest
    return _canonicalize_existing_or_missing(anchored)


def _canonicalize_existing_or_missing(path: Path) -> Path:
    if path.exists():
        return _canonicalize(path)

    missing: list[str] = []
    existing = path
    while not existing.exists():
        name = existing.name
        if name in ("", ".."):
            return _normalize(path)
        missing.append(name)
        if existing.parent == existing:
            return _normalize(path)
        existing = existing.parent

    canonical = _canonicalize(existing)
    for component in reversed(missing):
        canonical = canonical / component
    return _normalize(canonical)


def _normalize(path: Path) -> Path:
    normalized = Path()
    for part in path.parts:
        if part == ".":
            continue
        if part == "..":
            normalized = normalized.parent
        else:
            normalized = normalized / part
    return normalized