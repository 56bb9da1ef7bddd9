"""Job status state machine: processing -> completed | failed. Terminal states are final."""
from enum import Enum


class JobStatus(str, Enum):
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


TRANSITIONS: dict[JobStatus, frozenset[JobStatus]] = {
    JobStatus.PROCESSING: frozenset({JobStatus.COMPLETED, JobStatus.FAILED}),
    JobStatus.COMPLETED: frozenset(),
    JobStatus.FAILED: frozenset(),
}


class IllegalTransition(ValueError):
    def __init__(self, current: JobStatus, target: JobStatus) -> None:
        super().__init__(f"illegal job transition {current.value} -> {target.value}")
        self.current = current
        self.target = target


def can_transition(current: JobStatus | str, target: JobStatus | str) -> bool:
    return JobStatus(target) in TRANSITIONS[JobStatus(current)]


def transition(current: JobStatus | str, target: JobStatus | str) -> JobStatus:
    current, target = JobStatus(current), JobStatus(target)
    if target not in TRANSITIONS[current]:
        raise IllegalTransition(current, target)
    return target


def is_terminal(status: JobStatus | str) -> bool:
    return not TRANSITIONS[JobStatus(status)]
