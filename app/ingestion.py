import os
from typing import Optional
from urllib.parse import unquote_plus

from common.errors import ClassifiedError
from common.transcribe_client import TranscribeClient
from database.submission import Status, Submission, SubmissionStore


def submission_id_from_key(object_key: str) -> Optional[str]:
    # audio-files/2024/01/31/<submission_id>.webm -> <submission_id>
    file_name = os.path.basename(object_key)
    submission_id = file_name.split(".", 1)[0].strip()
    return submission_id if submission_id else None


class IngestionHandler:
    def __init__(self, store: SubmissionStore, transcriber: TranscribeClient):
        self.store = store
        self.transcriber = transcriber

    def handle(self, bucket: str, object_key: str) -> Optional[str]:
        """Registers the uploaded object and kicks off its transcription, returns the submission id if new."""
        # https://stackoverflow.com/questions/37412267/key-given-by-lambda-s3-event-cannot-be-used-when-containing-non-ascii-characters
        object_key = unquote_plus(object_key)
        submission_id = submission_id_from_key(object_key)
        if submission_id is None:
            print(f"ERROR: cannot derive submission id from object key {object_key}, skipping")
            return None
        print(f"Received upload s3://{bucket}/{object_key} for submission {submission_id}")

        submission = Submission.create(submission_id=submission_id, source_key=object_key)
        if not self.store.insert_if_absent(submission):
            # Same object reported twice (S3 at-least-once), the first event does the work.
            print(f"INFO: submission {submission_id} already ingested, skipping")
            return None

        try:
            job_reference = self.transcriber.start_job(submission_id, bucket, object_key)
        except ClassifiedError as err:
            print(f"ERROR: could not start transcription for {submission_id}: {err}")
            self.store.transition(
                submission_id,
                Status.FAILED,
                error_message=f"Could not start transcription job: {err}",
            )
            return submission_id

        self.store.transition(
            submission_id, Status.TRANSCRIBING, job_reference=job_reference
        )
        return submission_id
