from dataclasses import dataclass
from typing import Callable, Optional

from app.messages import EnhancementRequest, SubmissionMetadata
from common.errors import ClassifiedError
from common.transcribe_client import OUTCOME_FAILED, OUTCOME_SUCCEEDED, TranscribeClient
from database.submission import Status, SubmissionStore

TRANSCRIPTION_FAILED_MESSAGE = "Transcription job failed"


@dataclass
class JobNotification:
    job_reference: str
    outcome: Optional[str]  # succeeded, failed
    submission_id: Optional[str] = None
    transcript_location: Optional[str] = None


class TranscriptionCompletionHandler:
    def __init__(
        self,
        store: SubmissionStore,
        transcriber: TranscribeClient,
        enhance: Callable[[EnhancementRequest], None],
    ):
        self.store = store
        self.transcriber = transcriber
        self.enhance = enhance

    def _complete_notification(self, notification: JobNotification) -> JobNotification:
        needs_transcript_location = (
            notification.outcome == OUTCOME_SUCCEEDED
            and notification.transcript_location is None
        )
        if (
            notification.submission_id is not None
            and notification.outcome is not None
            and not needs_transcript_location
        ):
            return notification

        job = self.transcriber.describe_job(notification.job_reference)
        return JobNotification(
            job_reference=notification.job_reference,
            outcome=notification.outcome or job.outcome,
            submission_id=notification.submission_id or job.submission_id,
            transcript_location=notification.transcript_location
            or job.transcript_location,
        )

    def handle(self, notification: JobNotification) -> None:
        notification = self._complete_notification(notification)
        submission_id = notification.submission_id
        if submission_id is None:
            print(
                f"ERROR: job {notification.job_reference} carries no submission id, ignoring"
            )
            return
        print(
            f"Transcription job {notification.job_reference} for submission {submission_id} "
            f"finished with outcome {notification.outcome}"
        )

        submission = self.store.get(submission_id)
        if submission is None:
            print(f"ERROR: submission {submission_id} not found, ignoring job result")
            return
        if submission.status.rank >= Status.TRANSCRIBED.rank:
            print(
                f"INFO: submission {submission_id} already {submission.status.value}, "
                f"skipping duplicate notification"
            )
            return
        if (
            submission.job_reference is not None
            and submission.job_reference != notification.job_reference
        ):
            print(
                f"WARNING: stale notification for job {notification.job_reference}, "
                f"submission {submission_id} is tracking {submission.job_reference}"
            )
            return

        if notification.outcome == OUTCOME_FAILED:
            self.store.transition(
                submission_id, Status.FAILED, error_message=TRANSCRIPTION_FAILED_MESSAGE
            )
            return
        if notification.outcome != OUTCOME_SUCCEEDED:
            print(
                f"WARNING: job {notification.job_reference} is not finished yet "
                f"(outcome {notification.outcome}), ignoring"
            )
            return

        try:
            transcript = self.transcriber.fetch_transcript(notification.transcript_location)
        except ClassifiedError as err:
            print(f"ERROR: could not read transcript for {submission_id}: {err}")
            self.store.transition(submission_id, Status.FAILED, error_message=str(err))
            return

        applied = self.store.transition(
            submission_id, Status.TRANSCRIBED, transcript=transcript
        )
        if not applied:
            # Someone else got here first.
            return

        self.enhance(
            EnhancementRequest(
                submission_id=submission_id,
                transcript=transcript,
                metadata=SubmissionMetadata.from_submission(submission),
            )
        )
