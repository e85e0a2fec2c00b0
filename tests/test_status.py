import pytest

from app.status import PROGRESS_BY_STATUS, StatusQueryService
from common.errors import StoreUnavailableError
from database.submission import Status, Submission
from tests.fakes import UnavailableStore

HAPPY_PATH = [
    Status.UPLOADED,
    Status.TRANSCRIBING,
    Status.TRANSCRIBED,
    Status.ENHANCING,
    Status.ENHANCED,
    Status.DELIVERED,
]


def test_progress_is_monotonic_along_the_happy_path():
    progresses = [PROGRESS_BY_STATUS[status] for status in HAPPY_PATH]
    assert progresses == sorted(progresses)
    assert len(set(progresses)) == len(progresses)
    assert [s for s, p in PROGRESS_BY_STATUS.items() if p == 1.0] == [Status.DELIVERED]
    assert PROGRESS_BY_STATUS[Status.FAILED] == 0.0


def test_not_found(sqlite_store):
    assert StatusQueryService(sqlite_store).get_status("nope") is None


def test_report_follows_the_record(sqlite_store):
    service = StatusQueryService(sqlite_store)
    sqlite_store.insert_if_absent(Submission.create("abc", "audio-files/abc.webm"))

    report = service.get_status("abc")
    assert report.status == Status.UPLOADED
    assert report.progress == 0.1

    sqlite_store.transition("abc", Status.TRANSCRIBING, job_reference="job-1")
    report = service.get_status("abc")
    assert report.status == Status.TRANSCRIBING
    assert report.progress == 0.3
    assert report.completed_at is None

    sqlite_store.transition("abc", Status.FAILED, error_message="Transcription job failed")
    report = service.get_status("abc")
    assert report.progress == 0.0
    assert report.error_message == "Transcription job failed"
    assert report.completed_at is not None

    as_dict = report.to_dict()
    assert as_dict["status"] == "failed"
    assert as_dict["submission_id"] == "abc"
    assert isinstance(as_dict["created_at"], str)


def test_get_status_does_not_write(sqlite_store):
    sqlite_store.insert_if_absent(Submission.create("abc", "audio-files/abc.webm"))
    updated_at = sqlite_store.get("abc").updated_at

    StatusQueryService(sqlite_store).get_status("abc")

    assert sqlite_store.get("abc").updated_at == updated_at


def test_store_outage_propagates():
    with pytest.raises(StoreUnavailableError):
        StatusQueryService(UnavailableStore()).get_status("abc")


def test_report_carries_transcript_and_article(sqlite_store):
    service = StatusQueryService(sqlite_store)
    sqlite_store.insert_if_absent(Submission.create("abc", "audio-files/abc.webm"))

    as_dict = service.get_status("abc").to_dict()
    assert as_dict["transcript"] is None
    assert as_dict["enhanced_content"] is None

    sqlite_store.transition("abc", Status.TRANSCRIBED, transcript="hello world")
    sqlite_store.transition("abc", Status.ENHANCED, enhanced_content="<h1>Hello</h1>")

    report = service.get_status("abc")
    assert report.transcript == "hello world"
    assert report.enhanced_content == "<h1>Hello</h1>"
    as_dict = report.to_dict()
    assert as_dict["transcript"] == "hello world"
    assert as_dict["enhanced_content"] == "<h1>Hello</h1>"
