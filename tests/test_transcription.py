from app.ingestion import IngestionHandler
from app.transcription import (
    TRANSCRIPTION_FAILED_MESSAGE,
    JobNotification,
    TranscriptionCompletionHandler,
)
from common.transcribe_client import OUTCOME_FAILED, OUTCOME_SUCCEEDED, TranscriptionJob
from database.submission import Status
from tests.fakes import FakeTranscriber

SOURCE_KEY = "audio-files/2024/01/31/abc.webm"


def _setup(sqlite_store):
    transcriber = FakeTranscriber()
    IngestionHandler(sqlite_store, transcriber).handle("bucket", SOURCE_KEY)
    enhance_requests = []
    handler = TranscriptionCompletionHandler(
        sqlite_store, transcriber, enhance=enhance_requests.append
    )
    return transcriber, handler, enhance_requests


def test_success_writes_transcript_and_enhances(sqlite_store):
    transcriber, handler, enhance_requests = _setup(sqlite_store)
    transcriber.finish_job("speech-to-email-job-1", "Hello world")

    handler.handle(JobNotification("speech-to-email-job-1", OUTCOME_SUCCEEDED))

    submission = sqlite_store.get("abc")
    assert submission.status == Status.TRANSCRIBED
    assert submission.transcript == "Hello world"
    assert len(enhance_requests) == 1
    request = enhance_requests[0]
    assert request.submission_id == "abc"
    assert request.transcript == "Hello world"
    assert request.metadata.source_key == SOURCE_KEY
    assert request.metadata.original_file_name == "abc.webm"


def test_submission_id_comes_from_job_metadata(sqlite_store):
    transcriber, handler, _ = _setup(sqlite_store)
    transcriber.finish_job("speech-to-email-job-1", "Hello world")

    handler.handle(JobNotification("speech-to-email-job-1", OUTCOME_SUCCEEDED))

    assert transcriber.describe_calls == ["speech-to-email-job-1"]


def test_complete_notification_skips_describe(sqlite_store):
    transcriber, handler, enhance_requests = _setup(sqlite_store)
    transcriber.finish_job("speech-to-email-job-1", "Hello world")
    location = transcriber.jobs["speech-to-email-job-1"].transcript_location

    handler.handle(
        JobNotification(
            "speech-to-email-job-1",
            OUTCOME_SUCCEEDED,
            submission_id="abc",
            transcript_location=location,
        )
    )

    assert transcriber.describe_calls == []
    assert len(enhance_requests) == 1


def test_empty_transcript_is_valid(sqlite_store):
    transcriber, handler, enhance_requests = _setup(sqlite_store)
    transcriber.finish_job("speech-to-email-job-1", "")

    handler.handle(JobNotification("speech-to-email-job-1", OUTCOME_SUCCEEDED))

    assert sqlite_store.get("abc").status == Status.TRANSCRIBED
    assert enhance_requests[0].transcript == ""


def test_failed_job_marks_failed(sqlite_store):
    transcriber, handler, enhance_requests = _setup(sqlite_store)
    transcriber.finish_job("speech-to-email-job-1", None, outcome=OUTCOME_FAILED)

    handler.handle(JobNotification("speech-to-email-job-1", OUTCOME_FAILED))

    submission = sqlite_store.get("abc")
    assert submission.status == Status.FAILED
    assert submission.error_message == TRANSCRIPTION_FAILED_MESSAGE
    assert submission.completed_at is not None
    assert enhance_requests == []


def test_unreadable_artifact_marks_failed(sqlite_store):
    transcriber, handler, enhance_requests = _setup(sqlite_store)
    # Job succeeded but the artifact is missing
    transcriber.finish_job("speech-to-email-job-1", None)

    handler.handle(JobNotification("speech-to-email-job-1", OUTCOME_SUCCEEDED))

    submission = sqlite_store.get("abc")
    assert submission.status == Status.FAILED
    assert "no such artifact" in submission.error_message
    assert enhance_requests == []


def test_duplicate_notification_is_a_no_op(sqlite_store):
    transcriber, handler, enhance_requests = _setup(sqlite_store)
    transcriber.finish_job("speech-to-email-job-1", "Hello world")

    handler.handle(JobNotification("speech-to-email-job-1", OUTCOME_SUCCEEDED))
    handler.handle(JobNotification("speech-to-email-job-1", OUTCOME_SUCCEEDED))

    assert len(enhance_requests) == 1
    assert sqlite_store.get("abc").transcript == "Hello world"


def test_stale_job_reference_is_ignored(sqlite_store):
    transcriber, handler, enhance_requests = _setup(sqlite_store)
    transcriber.jobs["old-job"] = TranscriptionJob(
        job_reference="old-job", outcome=None, submission_id="abc"
    )
    transcriber.finish_job("old-job", "Old transcript")

    handler.handle(JobNotification("old-job", OUTCOME_SUCCEEDED))

    assert sqlite_store.get("abc").status == Status.TRANSCRIBING
    assert enhance_requests == []


def test_unknown_submission_is_ignored(sqlite_store):
    transcriber = FakeTranscriber()
    enhance_requests = []
    handler = TranscriptionCompletionHandler(
        sqlite_store, transcriber, enhance=enhance_requests.append
    )

    handler.handle(
        JobNotification(
            "job-x",
            OUTCOME_SUCCEEDED,
            submission_id="missing",
            transcript_location="s3://bucket/transcriptions/missing.json",
        )
    )

    assert enhance_requests == []
