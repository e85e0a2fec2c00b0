import datetime
from dataclasses import dataclass
from typing import Any, Dict, Optional

from database.submission import Submission


@dataclass
class SubmissionMetadata:
    source_key: str
    original_file_name: str
    created_at: Optional[datetime.datetime] = None

    @staticmethod
    def from_submission(submission: Submission) -> "SubmissionMetadata":
        return SubmissionMetadata(
            source_key=submission.source_key,
            original_file_name=submission.original_file_name(),
            created_at=submission.created_at,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source_key": self.source_key,
            "original_file_name": self.original_file_name,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "SubmissionMetadata":
        created_at = data.get("created_at")
        return SubmissionMetadata(
            source_key=data["source_key"],
            original_file_name=data.get("original_file_name")
            or data["source_key"].split("/")[-1],
            created_at=datetime.datetime.fromisoformat(created_at) if created_at else None,
        )


# Transcription-completion -> Enhancement
@dataclass
class EnhancementRequest:
    submission_id: str
    transcript: str
    metadata: SubmissionMetadata

    def to_dict(self) -> Dict[str, Any]:
        return {
            "submission_id": self.submission_id,
            "transcript": self.transcript,
            "metadata": self.metadata.to_dict(),
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "EnhancementRequest":
        return EnhancementRequest(
            submission_id=data["submission_id"],
            transcript=data["transcript"],
            metadata=SubmissionMetadata.from_dict(data["metadata"]),
        )


# Enhancement -> Delivery, `transcript` rides along so the email can show the original.
@dataclass
class DeliveryRequest:
    submission_id: str
    content: str
    transcript: str
    metadata: SubmissionMetadata

    def to_dict(self) -> Dict[str, Any]:
        return {
            "submission_id": self.submission_id,
            "content": self.content,
            "transcript": self.transcript,
            "metadata": self.metadata.to_dict(),
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "DeliveryRequest":
        return DeliveryRequest(
            submission_id=data["submission_id"],
            content=data["content"],
            transcript=data.get("transcript") or "",
            metadata=SubmissionMetadata.from_dict(data["metadata"]),
        )
