# gitoutpost

`gitoutpost` is a library for working with *outposts*. An outpost is a separate clone of a git source repository that fetches from it and pushes back to it. This package contains the core pieces.

- **Ref names** (`gitoutpost.refname`). `BranchName`, `RefName` and `RemoteName` are validated names, and each is built with `parse()`.
  - Names that are empty or start with `-` are rejected.
  - Branch names are checked with `git check-ref-format --branch`, and full ref names with `git check-ref-format`.
  - Remote names may contain only ASCII letters, digits, `.`, `_` and `-`.
  - `SourceRemoteRef.parse("local/feature/foo")` splits at the first `/` into a remote and a branch.
  - `UpstreamRef.short_branch()` returns the branch name for a `refs/heads/...` merge ref and `None` otherwise.
- **Git calls** (`gitoutpost.git`). `Git(cwd, env)` runs `git` in a directory with extra environment variables. `with_env()` returns a copy with one more variable set.
  - `run_capture()` returns stdout with the trailing newline removed.
  - `run_check()` raises on failure.
  - `run_status()` returns whether git exited with status 0.
- **Registry** (`gitoutpost.registry`). `Registry`, `RegistryMut` and `RegistryEntry` keep track of outposts in `.outpost/registry.json` inside the source work tree.
  - A missing file loads as an empty registry.
  - Saving writes the file atomically and adds `.outpost/` to the repository's `info/exclude`.
  - Entries are keyed by canonical path. They can be locked with a reason and unlocked.
  - Re-adding a path keeps an existing lock.
  - `update_path()` and `remove_by_path()` also find an entry whose recorded path no longer exists.
- **Source repository** (`gitoutpost.source_repo`). `SourceRepo.discover()` and `SourceRepo.at()` open a repository and canonicalise its work tree and git directories. A `SourceRepo` can report:
  - the current branch;
  - the branches checked out across its worktrees, and the worktree that has a given branch checked out;
  - whether a branch exists;
  - the configured upstream of a branch;
  - whether the work tree is dirty.

  `fast_forward_branch_from_origin()` fetches a branch from `origin` and fast-forwards it. It uses `merge --ff-only` in the worktree that has the branch checked out, or `update-ref` if no worktree does. `registry()` and `registry_mut()` open the repository's registry. The module also provides the helpers `current_branch`, `is_dirty`, `read_optional_config`, `rev_parse` and `is_ancestor`, which take a `Git`.
- **Safety checks** (`gitoutpost.safety`).
  - `check_clean()` raises `DirtyTree` for staged, unstaged or untracked changes, with the hint `"pass --force"`.
  - `check_destination_clean()` raises `DestinationExists` unless the destination is missing or an empty directory. It raises `DestinationInsideRepo` if the destination lies inside the repository that contains the parent directory.
- **Progress reporting** (`gitoutpost.reporter`). `Reporter` is an abstract base with `step(kind, message)` and `warn(message)`. `StepKind` lists the kinds of step. `CapturingReporter` records steps and warnings in memory.

Failures are raised as subclasses of `OutpostError` from `gitoutpost.errors`:

- `InvalidRefName`
- `GitFailed`, which carries `git_args`, `code` and `stderr`
- `NotARepo`
- `IoAt`
- `BadRegistry`
- `RegistryEntryNotFound`
- `RegistryEntryNotManaged`
- `BranchNotFound`
- `Divergence`
- `DirtyTree`
- `DestinationExists`
- `DestinationInsideRepo`

## Requirements

- Python 3.10 or later
- a `git` executable on `PATH`

## Install

```
pip install gitoutpost
```

## Example

```python
from pathlib import Path

from gitoutpost.refname import BranchName, RemoteName
from gitoutpost.registry import RegistryEntry
from gitoutpost.safety import check_destination_clean
from gitoutpost.source_repo import SourceRepo

source = SourceRepo.discover(Path.cwd())
print(source.current_branch())

parent = source.work_tree.parent
check_destination_clean(parent, Path("my-outpost"))
outpost_dir = parent / "my-outpost"
outpost_dir.mkdir()

with source.registry_mut() as registry:
    registry.add(RegistryEntry.new(outpost_dir, RemoteName.parse("local")))
    registry.lock(outpost_dir, "release freeze")
    registry.save()

for entry in source.registry().entries():
    print(entry.path, entry.remote_name, entry.locked, entry.lock_reason)

main = BranchName.parse("main")
if source.branch_exists(main):
    source.fast_forward_branch_from_origin(main)
```

Changes made through `RegistryMut` are written only by `save()`. If you use it as a context manager and leave the block with unsaved changes, a `RuntimeWarning` is issued.

## What this package does not do

This is a library only. It has no command-line program.

It does not create, clone, list, prune or remove outposts. It does not fetch into, merge into or push from an outpost. It has no type for an outpost repository itself.

It supplies the building blocks such operations would use:

- name validation
- git invocation
- the registry
- source repository queries
- safety checks

## Tests

```
pip install -e ".[test]"
pytest
```