from typing import Dict, List, Optional

from app.messages import DeliveryRequest, EnhancementRequest
from app.pipeline import Pipeline
from app.transcription import JobNotification
from common.config import TRANSCRIPTS_OBJECT_PREFIX
from common.transcribe_client import outcome_from_job_status

# AWS Lambda Execution Context feature, clients are re-used across warm invocations.
_pipeline: Optional[Pipeline] = None


def get_pipeline() -> Pipeline:
    global _pipeline
    if _pipeline is None:
        _pipeline = Pipeline.from_config()
    return _pipeline


# S3 ObjectCreated
def handle_upload_event(pipeline: Pipeline, event: Dict) -> List[str]:
    records = event.get("Records")
    if not records:
        raise ValueError("This Lambda currently only supports S3 based events")

    submission_ids = []
    for record in records:
        bucket = record["s3"]["bucket"]["name"]
        # Still url-encoded, the ingestion handler decodes it.
        key = record["s3"]["object"]["key"]
        print(f"Received Event From Bucket {bucket} for {key}")
        if key.startswith(f"{TRANSCRIPTS_OBJECT_PREFIX}/"):
            print(f"INFO: skipping transcription output {key}")
            continue
        submission_id = pipeline.ingestion.handle(bucket, key)
        if submission_id is not None:
            submission_ids.append(submission_id)
    return submission_ids


# EventBridge "Transcribe Job State Change"
def handle_transcription_event(pipeline: Pipeline, event: Dict) -> None:
    detail = event.get("detail") or {}
    job_name = detail.get("TranscriptionJobName")
    if not job_name:
        raise ValueError("Invalid event format, missing detail.TranscriptionJobName")
    job_status = detail.get("TranscriptionJobStatus")
    print(f"Transcription job {job_name} changed state to {job_status}")

    outcome = outcome_from_job_status(job_status)
    if outcome is None:
        print(f"INFO: job {job_name} is {job_status}, nothing to do yet")
        return
    # The event carries neither the tags nor the transcript location, the handler describes the job.
    pipeline.transcription.handle(JobNotification(job_reference=job_name, outcome=outcome))


def upload_lambda_handler(event, context):
    submission_ids = handle_upload_event(get_pipeline(), event)
    return {"submission_ids": submission_ids}


def transcription_lambda_handler(event, context):
    handle_transcription_event(get_pipeline(), event)


# Direct payloads, used to re-drive a stuck submission by hand.
def enhancement_lambda_handler(event, context):
    get_pipeline().enhance(EnhancementRequest.from_dict(event))


def delivery_lambda_handler(event, context):
    get_pipeline().deliver(DeliveryRequest.from_dict(event))
