import datetime
import enum
from dataclasses import asdict, dataclass
from typing import Any, Dict, FrozenSet, Iterable, Optional

from common.utils import utc_now


class Status(enum.Enum):
    UPLOADED = "uploaded"
    TRANSCRIBING = "transcribing"
    TRANSCRIBED = "transcribed"
    ENHANCING = "enhancing"
    ENHANCED = "enhanced"
    DELIVERED = "delivered"
    FAILED = "failed"

    @property
    def rank(self) -> int:
        return STATUS_RANK[self]

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


# delivered and failed share the top rank, neither comes "after" the other.
STATUS_RANK = {
    Status.UPLOADED: 0,
    Status.TRANSCRIBING: 1,
    Status.TRANSCRIBED: 2,
    Status.ENHANCING: 3,
    Status.ENHANCED: 4,
    Status.DELIVERED: 5,
    Status.FAILED: 5,
}
TERMINAL_STATUSES = frozenset({Status.DELIVERED, Status.FAILED})
NON_TERMINAL_STATUSES = frozenset(set(Status) - TERMINAL_STATUSES)

# The whole state machine: a status can only be written if the record currently is in one of these.
ALLOWED_PREDECESSORS: Dict[Status, FrozenSet[Status]] = {
    Status.UPLOADED: frozenset(),  # only by insert_if_absent
    Status.TRANSCRIBING: frozenset({Status.UPLOADED}),
    Status.TRANSCRIBED: frozenset({Status.UPLOADED, Status.TRANSCRIBING}),
    # Re-entering ENHANCING is how a crashed enhancement attempt gets re-driven.
    Status.ENHANCING: frozenset({Status.TRANSCRIBED, Status.ENHANCING}),
    Status.ENHANCED: frozenset({Status.TRANSCRIBED, Status.ENHANCING}),
    Status.DELIVERED: frozenset({Status.ENHANCED}),
    Status.FAILED: NON_TERMINAL_STATUSES,
}

SUBMISSION_FIELDS = (
    "id",
    "source_key",
    "status",
    "transcript",
    "enhanced_content",
    "error_message",
    "retry_count",
    "created_at",
    "updated_at",
    "completed_at",
    "job_reference",
    "delivery_reference",
)
IMMUTABLE_FIELDS = ("id", "source_key", "created_at")


@dataclass
class Submission:
    id: str
    source_key: str
    status: Status = Status.UPLOADED
    transcript: Optional[str] = None
    enhanced_content: Optional[str] = None
    error_message: Optional[str] = None
    retry_count: int = 0
    created_at: Optional[datetime.datetime] = None
    updated_at: Optional[datetime.datetime] = None
    completed_at: Optional[datetime.datetime] = None
    job_reference: Optional[str] = None
    delivery_reference: Optional[str] = None

    @staticmethod
    def create(submission_id: str, source_key: str) -> "Submission":
        now = utc_now()
        return Submission(
            id=submission_id,
            source_key=source_key,
            status=Status.UPLOADED,
            retry_count=0,
            created_at=now,
            updated_at=now,
        )

    def original_file_name(self) -> str:
        return self.source_key.split("/")[-1] if self.source_key else "unknown"

    def to_dict(self) -> Dict[str, Any]:
        result = asdict(self)
        result["status"] = self.status.value
        return result


class SubmissionStore:
    """
    Key-value store holding one Submission per id.
    Backends implement `insert_if_absent`, `update` and `get`; writes which are NOT applied
    return False instead of raising, outages raise StoreUnavailableError.
    """

    def insert_if_absent(self, submission: Submission) -> bool:
        raise NotImplementedError("insert_if_absent")

    # `fields` are keyed by Submission attribute names,
    # applied only if the record exists and its current status is in `allowed_from`.
    def update(
        self,
        submission_id: str,
        fields: Dict[str, Any],
        allowed_from: Iterable[Status],
    ) -> bool:
        raise NotImplementedError("update")

    def get(self, submission_id: str) -> Optional[Submission]:
        raise NotImplementedError("get")

    def transition(self, submission_id: str, target: Status, **fields) -> bool:
        allowed_from = ALLOWED_PREDECESSORS[target]
        if not allowed_from:
            raise ValueError(f"status {target.value} cannot be reached by an update")
        for name in fields:
            if name not in SUBMISSION_FIELDS or name in IMMUTABLE_FIELDS:
                raise ValueError(f"cannot update field {name} of a submission")

        now = utc_now()
        fields["status"] = target
        fields["updated_at"] = now
        if target.is_terminal:
            fields["completed_at"] = now

        applied = self.update(submission_id, fields, allowed_from=allowed_from)
        if applied:
            print(f"Submission {submission_id}: status is now {target.value}")
        else:
            print(
                f"INFO: Submission {submission_id}: NOT moved to {target.value}, "
                f"record missing or not in {sorted(s.value for s in allowed_from)}"
            )
        return applied

    # For observability-only fields like retry_count, which should not move the status.
    def update_in_status(self, submission_id: str, status: Status, **fields) -> bool:
        fields["updated_at"] = utc_now()
        return self.update(submission_id, fields, allowed_from=[status])
