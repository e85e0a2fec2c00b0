import io
import json

import boto3
import pytest
from botocore.response import StreamingBody
from botocore.stub import ANY, Stubber

from common.errors import ArtifactUnreadableError, ErrorKind, TranscriptionJobError
from common.transcribe_client import (
    OUTCOME_FAILED,
    OUTCOME_SUCCEEDED,
    TranscribeClient,
    extract_transcript_text,
    get_media_format,
)

BUCKET = "speech-to-email-audio"


@pytest.fixture
def clients():
    transcribe = boto3.client("transcribe", region_name="us-west-2")
    s3 = boto3.client("s3", region_name="us-west-2")
    with Stubber(transcribe) as transcribe_stub, Stubber(s3) as s3_stub:
        yield TranscribeClient(transcribe=transcribe, s3=s3), transcribe_stub, s3_stub
        transcribe_stub.assert_no_pending_responses()
        s3_stub.assert_no_pending_responses()


def _artifact(text):
    return json.dumps(
        {"jobName": "job", "results": {"transcripts": [{"transcript": text}], "items": []}}
    ).encode("utf-8")


def _body(data: bytes):
    return StreamingBody(io.BytesIO(data), len(data))


def test_get_media_format():
    assert get_media_format("audio-files/abc.webm") == "webm"
    assert get_media_format("audio-files/abc.WAV") == "wav"
    assert get_media_format("audio-files/abc") == "mp3"


def test_extract_transcript_text():
    assert extract_transcript_text(_artifact("hello there")) == "hello there"
    assert extract_transcript_text(_artifact("")) == ""

    for name, raw in {
        "not json": b"<html>",
        "not an object": b"[1, 2]",
        "no results": b'{"jobName": "job"}',
        "no transcripts": b'{"results": {"transcripts": []}}',
        "no transcript key": b'{"results": {"transcripts": [{}]}}',
    }.items():
        print(f"test_case: {name}")
        with pytest.raises(ArtifactUnreadableError):
            extract_transcript_text(raw)


def test_start_job_tags_the_submission(clients):
    client, transcribe_stub, _ = clients
    transcribe_stub.add_response(
        "start_transcription_job",
        {"TranscriptionJob": {"TranscriptionJobName": "whatever"}},
        {
            "TranscriptionJobName": ANY,
            "Media": {"MediaFileUri": f"s3://{BUCKET}/audio-files/abc.webm"},
            "MediaFormat": "webm",
            "LanguageCode": "en-US",
            "OutputBucketName": BUCKET,
            "OutputKey": "transcriptions/abc.json",
            "Settings": {"MaxSpeakerLabels": 2, "ShowSpeakerLabels": True},
            "Tags": [{"Key": "submission_id", "Value": "abc"}],
        },
    )

    job_reference = client.start_job("abc", BUCKET, "audio-files/abc.webm")

    assert job_reference.startswith("speech-to-email-")


def test_start_job_classifies_errors(clients):
    client, transcribe_stub, _ = clients
    transcribe_stub.add_client_error(
        "start_transcription_job", service_error_code="LimitExceededException", http_status_code=400
    )

    with pytest.raises(TranscriptionJobError) as exc_info:
        client.start_job("abc", BUCKET, "audio-files/abc.webm")

    assert exc_info.value.kind == ErrorKind.RATE_LIMITED


def test_describe_job(clients):
    client, transcribe_stub, _ = clients
    transcribe_stub.add_response(
        "get_transcription_job",
        {
            "TranscriptionJob": {
                "TranscriptionJobName": "job-1",
                "TranscriptionJobStatus": "COMPLETED",
                "Transcript": {
                    "TranscriptFileUri": f"https://s3.us-west-2.amazonaws.com/{BUCKET}/transcriptions/abc.json"
                },
                "Tags": [{"Key": "submission_id", "Value": "abc"}],
            }
        },
        {"TranscriptionJobName": "job-1"},
    )
    transcribe_stub.add_response(
        "get_transcription_job",
        {
            "TranscriptionJob": {
                "TranscriptionJobName": "job-2",
                "TranscriptionJobStatus": "FAILED",
                "FailureReason": "Unsupported media",
            }
        },
        {"TranscriptionJobName": "job-2"},
    )

    job = client.describe_job("job-1")
    assert job.outcome == OUTCOME_SUCCEEDED
    assert job.submission_id == "abc"
    assert job.transcript_location.endswith("transcriptions/abc.json")

    failed = client.describe_job("job-2")
    assert failed.outcome == OUTCOME_FAILED
    assert failed.submission_id is None
    assert failed.failure_reason == "Unsupported media"


def test_fetch_transcript(clients):
    client, _, s3_stub = clients
    s3_stub.add_response(
        "get_object",
        {"Body": _body(_artifact("hello there"))},
        {"Bucket": BUCKET, "Key": "transcriptions/abc.json"},
    )

    text = client.fetch_transcript(
        f"https://s3.us-west-2.amazonaws.com/{BUCKET}/transcriptions/abc.json"
    )

    assert text == "hello there"


def test_fetch_missing_transcript_is_unreadable(clients):
    client, _, s3_stub = clients
    s3_stub.add_client_error("get_object", service_error_code="NoSuchKey", http_status_code=404)

    with pytest.raises(ArtifactUnreadableError) as exc_info:
        client.fetch_transcript(f"s3://{BUCKET}/transcriptions/abc.json")

    assert not exc_info.value.retryable


def test_fetch_without_location_is_unreadable(clients):
    client, _, _ = clients
    with pytest.raises(ArtifactUnreadableError):
        client.fetch_transcript(None)
    with pytest.raises(ArtifactUnreadableError):
        client.fetch_transcript("ftp://somewhere/else")
