"""The per-source registry of outposts, kept in ``.outpost/registry.json``."""

from __future__ import annotations

import dataclasses
import json
import os
import re
import tempfile
import warnings
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Protocol

from .errors import BadRegistry, InvalidRefName, IoAt, RegistryEntryNotFound
from .refname import RemoteName

REGISTRY_VERSION = 1
OUTPOST_IGNORE_LINE = ".outpost/"

_U32_MAX = 2**32 - 1
_TIMESTAMP_RE = re.compile(
    r"(\d{4})-(\d{2})-(\d{2})[Tt ](\d{2}):(\d{2}):(\d{2})(?:\.(\d+))?([Zz]|[+-]\d{2}:\d{2})"
)


class _RegistrySource(Protocol):
    @property
    def registry_path(self) -> Path: ...

    @property
    def local_exclude_path(self) -> Path: ...


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _canonicalize(path: os.PathLike[str] | str) -> Path:
    try:
        return Path(path).resolve(strict=True)
    except OSError as exc:
        raise IoAt(Path(path), exc) from exc


def _format_timestamp(moment: datetime) -> str:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    micros = moment.microsecond
    if micros == 0:
        fraction = ""
    elif micros % 1000 == 0:
        fraction = f".{micros // 1000:03d}"
    else:
        fraction = f".{micros:06d}"
    return f"{moment.strftime('%Y-%m-%dT%H:%M:%S')}{fraction}Z"


def _parse_timestamp(value: Any, field_name: str) -> datetime:
    if not isinstance(value, str):
        raise ValueError(f"invalid type for `{field_name}`: expected a timestamp string")
    match = _TIMESTAMP_RE.fullmatch(value)
    if match is None:
        raise ValueError(f"invalid timestamp for `{field_name}`: {value!r}")
    year, month, day, hour, minute, second, fraction, offset = match.groups()
    micros = int((fraction or "").ljust(6, "0")[:6])
    if offset in ("Z", "z"):
        tz = timezone.utc
    else:
        sign = 1 if offset[0] == "+" else -1
        tz = timezone(sign * timedelta(hours=int(offset[1:3]), minutes=int(offset[4:6])))
    moment = datetime(
        int(year), int(month), int(day), int(hour), int(minute), int(second), micros, tzinfo=tz
    )
    return moment.astimezone(timezone.utc)


@dataclass
class RegistryEntry:
    """One registered outpost."""

    path: Path
    created_at: datetime
    remote_name: RemoteName
    locked: bool = False
    lock_reason: str | None = None
    locked_at: datetime | None = None

    @classmethod
    def new(cls, path: os.PathLike[str] | str, remote_name: RemoteName) -> RegistryEntry:
        """An unlocked entry for an existing path, created now."""
        return cls(
            path=_canonicalize(path),
            created_at=_utc_now(),
            remote_name=remote_name,
        )

    def _to_json(self) -> dict[str, Any]:
        return {
            "path": os.fspath(self.path),
            "created_at": _format_timestamp(self.created_at),
            "remote_name": self.remote_name.value,
            "locked": self.locked,
            "lock_reason": self.lock_reason,
            "locked_at": None if self.locked_at is None else _format_timestamp(self.locked_at),
        }


@dataclass
class _RawEntry:
    path: Path
    created_at: datetime
    remote_name: str
    locked: bool
    lock_reason: str | None
    locked_at: datetime | None


def _require(mapping: dict[str, Any], key: str) -> Any:
    if key not in mapping:
        raise ValueError(f"missing field `{key}`")
    return mapping[key]


def _decode_entry(raw: Any) -> _RawEntry:
    if not isinstance(raw, dict):
        raise ValueError("invalid type: expected an outpost object")
    path = _require(raw, "path")
    if not isinstance(path, str):
        raise ValueError("invalid type for `path`: expected a string")
    created_at = _parse_timestamp(_require(raw, "created_at"), "created_at")
    remote_name = _require(raw, "remote_name")
    if not isinstance(remote_name, str):
        raise ValueError("invalid type for `remote_name`: expected a string")
    locked = _require(raw, "locked")
    if not isinstance(locked, bool):
        raise ValueError("invalid type for `locked`: expected a boolean")
    lock_reason = raw.get("lock_reason")
    if lock_reason is not None and not isinstance(lock_reason, str):
        raise ValueError("invalid type for `lock_reason`: expected a string or null")
    locked_at_raw = raw.get("locked_at")
    locked_at = None if locked_at_raw is None else _parse_timestamp(locked_at_raw, "locked_at")
    return _RawEntry(Path(path), created_at, remote_name, locked, lock_reason, locked_at)


def _decode_file(contents: str) -> tuple[int, list[_RawEntry]]:
    data = json.loads(contents)
    if not isinstance(data, dict):
        raise ValueError("invalid type: expected a registry object")
    version = _require(data, "version")
    if isinstance(version, bool) or not isinstance(version, int) or not 0 <= version <= _U32_MAX:
        raise ValueError("invalid type for `version`: expected an unsigned 32-bit integer")
    outposts = _require(data, "outposts")
    if not isinstance(outposts, list):
        raise ValueError("invalid type for `outposts`: expected a list")
    return version, [_decode_entry(item) for item in outposts]


def _ensure_local_ignore(exclude_path: Path) -> None:
    parent = exclude_path.parent
    try:
        parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise IoAt(parent, exc) from exc

    try:
        with open(exclude_path, encoding="utf-8", newline="") as handle:
            contents = handle.read()
    except FileNotFoundError:
        contents = ""
    except (OSError, UnicodeDecodeError) as exc:
        raise IoAt(exclude_path, exc) from exc

    if any(line.strip() == OUTPOST_IGNORE_LINE for line in contents.splitlines()):
        return
    if contents and not contents.endswith("\n"):
        contents += "\n"
    contents += OUTPOST_IGNORE_LINE + "\n"
    try:
        with open(exclude_path, "w", encoding="utf-8", newline="") as handle:
            handle.write(contents)
    except OSError as exc:
        raise IoAt(exclude_path, exc) from exc


class Registry:
    """A read-only snapshot of the registry of a source repository."""

    def __init__(
        self,
        path: Path,
        exclude_path: Path,
        entries: list[RegistryEntry] | None = None,
        version: int = REGISTRY_VERSION,
    ) -> None:
        self.path = Path(path)
        self.exclude_path = Path(exclude_path)
        self.version = version
        self._entries: list[RegistryEntry] = list(entries or [])

    @classmethod
    def load(cls, source: _RegistrySource) -> Registry:
        """Read the registry; a missing file gives an empty registry."""
        path = Path(source.registry_path)
        exclude_path = Path(source.local_exclude_path)
        try:
            contents = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return cls(path, exclude_path)
        except OSError as exc:
            raise IoAt(path, exc) from exc
        except UnicodeDecodeError as exc:
            raise BadRegistry(path, str(exc)) from exc

        try:
            version, raw_entries = _decode_file(contents)
        except ValueError as exc:
            raise BadRegistry(path, str(exc)) from exc
        if version != REGISTRY_VERSION:
            raise BadRegistry(path, f"unsupported registry version {version}")

        entries = []
        for raw in raw_entries:
            try:
                remote_name = RemoteName.parse(raw.remote_name)
            except InvalidRefName as exc:
                raise BadRegistry(path, str(exc)) from exc
            entries.append(
                RegistryEntry(
                    path=raw.path,
                    created_at=raw.created_at,
                    remote_name=remote_name,
                    locked=raw.locked,
                    lock_reason=raw.lock_reason,
                    locked_at=raw.locked_at,
                )
            )
        return cls(path, exclude_path, entries)

    def entries(self) -> tuple[RegistryEntry, ...]:
        """The registered outposts, in registration order."""
        return tuple(self._entries)

    def save(self) -> None:
        """Write the registry atomically and make sure git ignores ``.outpost/``."""
        parent = self.path.parent
        try:
            parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise IoAt(parent, exc) from exc
        _ensure_local_ignore(self.exclude_path)

        document = {
            "version": self.version,
            "outposts": [entry._to_json() for entry in self._entries],
        }
        text = json.dumps(document, indent=2, ensure_ascii=False) + "\n"
        try:
            fd, temp_name = tempfile.mkstemp(dir=parent, prefix=".tmp", suffix=".json")
        except OSError as exc:
            raise IoAt(parent, exc) from exc
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="") as handle:
                handle.write(text)
            os.replace(temp_name, self.path)
        except OSError as exc:
            try:
                os.unlink(temp_name)
            except OSError:
                pass
            raise IoAt(self.path, exc) from exc

    def _find(self, path: Path) -> int | None:
        return next(
            (index for index, entry in enumerate(self._entries) if entry.path == path),
            None,
        )

    def _find_existing_or_recorded(self, path: os.PathLike[str] | str) -> tuple[Path, int | None]:
        try:
            canonical = _canonicalize(path)
        except IoAt:
            index = self._find(Path(path))
            if index is None:
                raise
            return Path(path), index
        return canonical, self._find(canonical)


class RegistryMut:
    """A registry opened for changes; changes persist only on :meth:`save`.

    Use it as a context manager: leaving the block with unsaved changes
    issues a ``RuntimeWarning``.
    """

    def __init__(self, source: _RegistrySource, inner: Registry) -> None:
        self._source = source
        self._inner = inner
        self._dirty = False
        self._saved = False

    @classmethod
    def load(cls, source: _RegistrySource) -> RegistryMut:
        """Open the registry of ``source`` for changes."""
        return cls(source, Registry.load(source))

    def __enter__(self) -> RegistryMut:
        return self

    def __exit__(self, exc_type: object, exc: object, tb: object) -> None:
        if self._dirty and not self._saved:
            warnings.warn(
                "registry changes dropped without save", RuntimeWarning, stacklevel=2
            )

    def _touch(self) -> None:
        self._dirty = True
        self._saved = False

    def add(self, entry: RegistryEntry) -> None:
        """Register an outpost, replacing any entry at the same path but keeping its lock."""
        entry = dataclasses.replace(entry, path=_canonicalize(entry.path))
        index = self._inner._find(entry.path)
        if index is None:
            self._inner._entries.append(entry)
        else:
            old = self._inner._entries[index]
            if old.locked and not entry.locked:
                entry.locked = True
                entry.lock_reason = old.lock_reason
                entry.locked_at = old.locked_at
            self._inner._entries[index] = entry
        self._touch()

    def update_path(self, old: os.PathLike[str] | str, new: os.PathLike[str] | str) -> None:
        """Point the entry registered at ``old`` at ``new``."""
        old_path, index = self._inner._find_existing_or_recorded(old)
        new_path = _canonicalize(new)
        if index is None:
            raise RegistryEntryNotFound(old_path)
        self._inner._entries[index].path = new_path
        self._touch()

    def lock(self, path: os.PathLike[str] | str, reason: str | None = None) -> None:
        """Lock the entry at ``path`` with an optional reason."""
        entry = self._entry_at(path)
        entry.locked = True
        entry.lock_reason = reason
        entry.locked_at = _utc_now()
        self._touch()

    def unlock(self, path: os.PathLike[str] | str) -> None:
        """Clear the lock of the entry at ``path``."""
        entry = self._entry_at(path)
        entry.locked = False
        entry.lock_reason = None
        entry.locked_at = None
        self._touch()

    def _entry_at(self, path: os.PathLike[str] | str) -> RegistryEntry:
        canonical = _canonicalize(path)
        index = self._inner._find(canonical)
        if index is None:
            raise RegistryEntryNotFound(canonical)
        return self._inner._entries[index]

    def remove_by_path(self, path: os.PathLike[str] | str) -> bool:
        """Remove the entry at ``path``; return whether one was removed."""
        _, index = self._inner._find_existing_or_recorded(path)
        if index is None:
            return False
        del self._inner._entries[index]
        self._touch()
        return True

    def entries(self) -> tuple[RegistryEntry, ...]:
        """The registered outposts, including unsaved changes."""
        return self._inner.entries()

    def save(self) -> None:
        """Persist the changes."""
        self._saved = True
        self._inner.save()
        self._dirty = False