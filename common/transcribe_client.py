import json
import uuid
from dataclasses import dataclass
from typing import Optional

from botocore.exceptions import BotoCoreError, ClientError

from common.aws_utils import get_boto_client, get_s3_uri, parse_s3_location
from common.config import (
    TRANSCRIBE_JOB_NAME_PREFIX,
    TRANSCRIBE_LANGUAGE_CODE,
    TRANSCRIBE_MAX_SPEAKER_LABELS,
    TRANSCRIPTS_OBJECT_PREFIX,
)
from common.errors import (
    ArtifactUnreadableError,
    ErrorKind,
    TranscriptionJobError,
    classify_boto_error,
)
from common.utils import Timer, truncate_string

OUTCOME_SUCCEEDED = "succeeded"
OUTCOME_FAILED = "failed"
# Amazon Transcribe job states
JOB_STATUS_COMPLETED = "COMPLETED"
JOB_STATUS_FAILED = "FAILED"

SUBMISSION_ID_TAG = "submission_id"

SUPPORTED_MEDIA_FORMATS = ("mp3", "mp4", "wav", "flac", "ogg", "amr", "webm", "m4a")
DEFAULT_MEDIA_FORMAT = "mp3"


def get_media_format(object_key: str) -> str:
    extension = object_key.rsplit(".", 1)[-1].lower() if "." in object_key else ""
    if extension in SUPPORTED_MEDIA_FORMATS:
        return extension
    print(f"WARNING: unknown media format {extension} for {object_key}, assuming {DEFAULT_MEDIA_FORMAT}")
    return DEFAULT_MEDIA_FORMAT


def generate_job_name() -> str:
    # The submission id travels as a job tag, so the name only has to be unique.
    return f"{TRANSCRIBE_JOB_NAME_PREFIX}-{uuid.uuid4().hex}"


def outcome_from_job_status(job_status: str) -> Optional[str]:
    if job_status == JOB_STATUS_COMPLETED:
        return OUTCOME_SUCCEEDED
    if job_status == JOB_STATUS_FAILED:
        return OUTCOME_FAILED
    return None  # still QUEUED or IN_PROGRESS


@dataclass
class TranscriptionJob:
    job_reference: str
    outcome: Optional[str]
    submission_id: Optional[str] = None
    transcript_location: Optional[str] = None
    failure_reason: Optional[str] = None


def extract_transcript_text(raw_artifact) -> str:
    """Pulls `results.transcripts[0].transcript` out of an Amazon Transcribe output document."""
    try:
        artifact = json.loads(raw_artifact)
    except (TypeError, ValueError) as err:
        raise ArtifactUnreadableError(f"transcript artifact is not valid json: {err}") from err

    if not isinstance(artifact, dict):
        raise ArtifactUnreadableError(
            f"transcript artifact has unexpected type {type(artifact).__name__}"
        )
    transcripts = (artifact.get("results") or {}).get("transcripts")
    if not isinstance(transcripts, list) or len(transcripts) == 0:
        raise ArtifactUnreadableError("transcript artifact has no results.transcripts")
    text = transcripts[0].get("transcript") if isinstance(transcripts[0], dict) else None
    if not isinstance(text, str):
        raise ArtifactUnreadableError("transcript artifact has no transcript text")
    return text


class TranscribeClient:
    """Amazon Transcribe batch jobs, writing their output next to the audio in S3."""

    def __init__(self, transcribe=None, s3=None, language_code=TRANSCRIBE_LANGUAGE_CODE):
        self.transcribe = transcribe if transcribe is not None else get_boto_client("transcribe")
        self.s3 = s3 if s3 is not None else get_boto_client("s3")
        self.language_code = language_code

    def start_job(self, submission_id: str, bucket: str, object_key: str) -> str:
        job_name = generate_job_name()
        try:
            with Timer("Transcribe StartTranscriptionJob"):
                self.transcribe.start_transcription_job(
                    TranscriptionJobName=job_name,
                    Media={"MediaFileUri": get_s3_uri(bucket, object_key)},
                    MediaFormat=get_media_format(object_key),
                    LanguageCode=self.language_code,
                    OutputBucketName=bucket,
                    OutputKey=f"{TRANSCRIPTS_OBJECT_PREFIX}/{submission_id}.json",
                    Settings={
                        "MaxSpeakerLabels": TRANSCRIBE_MAX_SPEAKER_LABELS,
                        "ShowSpeakerLabels": True,
                    },
                    Tags=[{"Key": SUBMISSION_ID_TAG, "Value": submission_id}],
                )
        except (ClientError, BotoCoreError) as err:
            raise TranscriptionJobError(
                f"could not start transcription job for {object_key}: {err}",
                classify_boto_error(err),
            ) from err

        print(f"Started transcription job {job_name} for submission {submission_id}")
        return job_name

    def describe_job(self, job_reference: str) -> TranscriptionJob:
        try:
            response = self.transcribe.get_transcription_job(
                TranscriptionJobName=job_reference
            )
        except (ClientError, BotoCoreError) as err:
            raise TranscriptionJobError(
                f"could not describe transcription job {job_reference}: {err}",
                classify_boto_error(err),
            ) from err

        job = response.get("TranscriptionJob", {})
        tags = {tag["Key"]: tag["Value"] for tag in job.get("Tags", [])}
        return TranscriptionJob(
            job_reference=job_reference,
            outcome=outcome_from_job_status(job.get("TranscriptionJobStatus")),
            submission_id=tags.get(SUBMISSION_ID_TAG),
            transcript_location=job.get("Transcript", {}).get("TranscriptFileUri"),
            failure_reason=job.get("FailureReason"),
        )

    def fetch_transcript(self, transcript_location: Optional[str]) -> str:
        if not transcript_location:
            raise ArtifactUnreadableError("no transcript file location found in job result")
        bucket_and_key = parse_s3_location(transcript_location)
        if bucket_and_key is None:
            raise ArtifactUnreadableError(f"invalid S3 URI format: {transcript_location}")
        bucket, key = bucket_and_key

        try:
            with Timer("S3 GetObject transcript"):
                response = self.s3.get_object(Bucket=bucket, Key=key)
                raw_artifact = response["Body"].read()
        except (ClientError, BotoCoreError) as err:
            if classify_boto_error(err) != ErrorKind.PERMANENT:
                print(f"WARNING: transient error reading s3://{bucket}/{key}, NOT retrying: {err}")
            raise ArtifactUnreadableError(
                f"could not read transcript artifact s3://{bucket}/{key}: {err}"
            ) from err

        text = extract_transcript_text(raw_artifact)
        print(f"Extracted transcript ({len(text)} chars): {truncate_string(text)}")
        return text
