"""Progress reporting for outpost operations."""

from __future__ import annotations

import enum
from abc import ABC, abstractmethod
from dataclasses import dataclass, field


class StepKind(enum.Enum):
    """The kind of step an operation reports."""

    SOURCE_FETCH = "source_fetch"
    SOURCE_PUSH = "source_push"
    OUTPOST_FETCH = "outpost_fetch"
    OUTPOST_PUSH = "outpost_push"
    CONFIG_CHANGE = "config_change"
    CLEANUP = "cleanup"


class Reporter(ABC):
    """Receives steps and warnings as an operation runs."""

    @abstractmethod
    def step(self, kind: StepKind, message: str) -> None:
        """Record that a step of the given kind is happening."""

    @abstractmethod
    def warn(self, message: str) -> None:
        """Record a warning."""


@dataclass
class CapturingReporter(Reporter):
    """A reporter that keeps every step and warning in memory."""

    steps: list[tuple[StepKind, str]] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def step(self, kind: StepKind, message: str) -> None:
        self.steps.append((kind, message))

    def warn(self, message: str) -> None:
        self.warnings.append(message)

    def step_kinds(self) -> list[StepKind]:
        """The kinds of the recorded steps, in order."""
        return [kind for kind, _ in self.steps]