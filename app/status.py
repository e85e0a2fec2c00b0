import datetime
from dataclasses import dataclass
from typing import Any, Dict, Optional

from database.submission import Status, SubmissionStore

# Monotonic along the happy path, 1.0 only once the email is out.
PROGRESS_BY_STATUS = {
    Status.UPLOADED: 0.1,
    Status.TRANSCRIBING: 0.3,
    Status.TRANSCRIBED: 0.5,
    Status.ENHANCING: 0.7,
    Status.ENHANCED: 0.9,
    Status.DELIVERED: 1.0,
    Status.FAILED: 0.0,
}

DESCRIPTION_BY_STATUS = {
    Status.UPLOADED: "Upload received, waiting for transcription to start",
    Status.TRANSCRIBING: "Transcribing the recording",
    Status.TRANSCRIBED: "Transcription finished, preparing the article",
    Status.ENHANCING: "Writing the article",
    Status.ENHANCED: "Article ready, sending the email",
    Status.DELIVERED: "Email delivered",
    Status.FAILED: "Processing failed",
}


def _isoformat(dt: Optional[datetime.datetime]) -> Optional[str]:
    return dt.isoformat() if dt is not None else None


@dataclass
class StatusReport:
    submission_id: str
    status: Status
    progress: float
    description: str
    created_at: Optional[datetime.datetime] = None
    updated_at: Optional[datetime.datetime] = None
    completed_at: Optional[datetime.datetime] = None
    error_message: Optional[str] = None
    retry_count: int = 0
    transcript: Optional[str] = None
    enhanced_content: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "submission_id": self.submission_id,
            "status": self.status.value,
            "progress": self.progress,
            "description": self.description,
            "created_at": _isoformat(self.created_at),
            "updated_at": _isoformat(self.updated_at),
            "completed_at": _isoformat(self.completed_at),
            "error_message": self.error_message,
            "retry_count": self.retry_count,
            "transcript": self.transcript,
            "enhanced_content": self.enhanced_content,
        }


class StatusQueryService:
    def __init__(self, store: SubmissionStore):
        self.store = store

    def get_status(self, submission_id: str) -> Optional[StatusReport]:
        submission = self.store.get(submission_id)
        if submission is None:
            return None
        return StatusReport(
            submission_id=submission.id,
            status=submission.status,
            progress=PROGRESS_BY_STATUS[submission.status],
            description=DESCRIPTION_BY_STATUS[submission.status],
            created_at=submission.created_at,
            updated_at=submission.updated_at,
            completed_at=submission.completed_at,
            error_message=submission.error_message,
            retry_count=submission.retry_count,
            transcript=submission.transcript,
            enhanced_content=submission.enhanced_content,
        )
