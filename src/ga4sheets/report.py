from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol
import logging

logger = logging.getLogger(__name__)


class Action(Enum):
    CREATED = "Created"
    UPDATED = "Updated"
    SKIPPED = "Skipped"
    FAILED = "Failed"
    DELETED = "Deleted"
    ARCHIVED = "Archived"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class OutcomeRecord():
    row_index: int
    identifier: str
    action: Action
    detail: str = ""

    def to_row(self) -> list:
        return [self.row_index, self.identifier, str(self.action), self.detail]


@dataclass
class RunSummary():
    created: int = 0
    updated: int = 0
    skipped: int = 0
    failed: int = 0
    deleted: int = 0
    archived: int = 0

    @property
    def total(self) -> int:
        return self.created + self.updated + self.skipped + self.failed + self.deleted + self.archived

    def count(self, action: Action) -> None:
        name = action.name.lower()
        setattr(self, name, getattr(self, name) + 1)

    def as_dict(self) -> dict[str,int]:
        return {"created": self.created, "updated": self.updated, "skipped": self.skipped,
                "failed": self.failed, "deleted": self.deleted, "archived": self.archived}

    def __str__(self) -> str:
        return " ".join(f"{k}={v}" for k,v in self.as_dict().items()) + f" total={self.total}"


class Sink(Protocol):
    """Where outcomes go: a log, a report tab, a test."""
    def emit(self, outcome: OutcomeRecord) -> None: ...

    def emit_summary(self, summary: RunSummary) -> None: ...


class LoggingSink():
    def __init__(self, kind: str = "") -> None:
        self.kind = kind

    def emit(self, outcome: OutcomeRecord) -> None:
        level = logging.WARNING if outcome.action is Action.FAILED else logging.INFO
        logger.log(level, "%s row %d %s: %s %s", self.kind, outcome.row_index,
                   outcome.identifier, outcome.action, outcome.detail)

    def emit_summary(self, summary: RunSummary) -> None:
        logger.info("%s run finished: %s", self.kind, summary)


class MemorySink():
    def __init__(self) -> None:
        self.outcomes = []
        self.summaries = []

    def emit(self, outcome: OutcomeRecord) -> None:
        self.outcomes.append(outcome)

    def emit_summary(self, summary: RunSummary) -> None:
        self.summaries.append(summary)


class ResultReporter():
    """
    Pure aggregation of one run's outcomes, fanned out to any sinks.
    Never touches remote state.
    """
    def __init__(self, *sinks: Sink) -> None:
        self.sinks = list(sinks)
        self.outcomes = []
        self.summary = RunSummary()

    def __len__(self) -> int:
        return len(self.outcomes)

    def record(self, outcome: OutcomeRecord) -> OutcomeRecord:
        self.outcomes.append(outcome)
        self.summary.count(outcome.action)
        for s in self.sinks:
            s.emit(outcome)
        return outcome

    def finish(self) -> RunSummary:
        for s in self.sinks:
            s.emit_summary(self.summary)
        return self.summary
