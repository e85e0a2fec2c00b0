import json
import re
import uuid
from typing import Dict, Optional

from botocore.exceptions import BotoCoreError, ClientError, NoCredentialsError

from app.pipeline import get_store
from app.status import StatusQueryService
from common.aws_utils import get_boto_s3_client
from common.config import (
    ALLOWED_ORIGINS,
    AUDIO_BUCKET_NAME,
    AUDIO_OBJECT_PREFIX,
    MAX_UPLOAD_FILE_SIZE_BYTES,
    UPLOAD_URL_EXPIRES_IN_SECONDS,
)
from common.errors import StoreUnavailableError
from common.utils import utc_now

ENDPOINT_UPLOAD = "/upload"
ENDPOINT_STATUS = "/status/{submission_id}"

# content type -> object extension, which also drives the Transcribe MediaFormat
EXTENSION_BY_CONTENT_TYPE = {
    "audio/mpeg": "mp3",
    "audio/mp3": "mp3",
    "audio/wav": "wav",
    "audio/x-wav": "wav",
    "audio/m4a": "m4a",
    "audio/x-m4a": "m4a",
    "audio/mp4": "mp4",
    "audio/ogg": "ogg",
    "audio/webm": "webm",
    "audio/flac": "flac",
}
SUBMISSION_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,128}$")

# AWS Lambda Execution Context feature, this should save about 1 second on subsequent invocations.
_s3 = None
_status_service: Optional[StatusQueryService] = None


def get_s3():
    global _s3
    if _s3 is None:
        _s3 = get_boto_s3_client()
    return _s3


def get_status_service() -> StatusQueryService:
    global _status_service
    if _status_service is None:
        _status_service = StatusQueryService(get_store())
    return _status_service


def craft_response(status_code: int, body: Dict) -> Dict:
    return {"statusCode": status_code, "body": json.dumps(body)}


# NOTE: Please keep the `error_message` brief - do not include ids/values - to mitigate potential malicious action.
# If you need more info to debug, you can always log it.
def craft_error(status_code: int, error_message) -> Dict:
    print(f"ERROR({status_code}): {error_message}")
    return craft_response(status_code, {"error": error_message})


def _parse_body(event: Dict) -> Optional[Dict]:
    raw_body = event.get("body")
    if not raw_body:
        return None
    try:
        body = json.loads(raw_body)
    except ValueError:
        return None
    return body if isinstance(body, dict) else None


def get_upload_object_key(submission_id: str, extension: str) -> str:
    now = utc_now()
    return f"{AUDIO_OBJECT_PREFIX}/{now.strftime('%Y/%m/%d')}/{submission_id}.{extension}"


def handle_post_request_for_upload_url(event: Dict, s3) -> Dict:
    body = _parse_body(event)
    if body is None:
        return craft_error(400, "request body must be a json object")

    file_name = body.get("file_name")
    content_type = body.get("content_type")
    file_size = body.get("file_size")
    if not isinstance(file_name, str) or not file_name.strip():
        return craft_error(400, "file_name is required")
    if not isinstance(content_type, str) or not content_type:
        return craft_error(400, "content_type is required")
    content_type = content_type.lower()
    if content_type not in EXTENSION_BY_CONTENT_TYPE:
        return craft_error(400, "invalid content_type, only audio files are allowed")
    # bool is an int too
    if isinstance(file_size, bool) or not isinstance(file_size, (int, float)):
        return craft_error(400, "file_size is required and must be a number")
    if file_size <= 0:
        return craft_error(400, "file_size must be greater than 0")
    if file_size > MAX_UPLOAD_FILE_SIZE_BYTES:
        return craft_error(400, "file size exceeds maximum limit of 50MB")

    submission_id = str(uuid.uuid4())
    object_key = get_upload_object_key(
        submission_id, EXTENSION_BY_CONTENT_TYPE[content_type]
    )
    print(f"received upload request for submission {submission_id} of {file_name}")

    try:
        # Generate a presigned S3 PUT URL
        upload_url = s3.generate_presigned_url(
            "put_object",
            Params={
                "Bucket": AUDIO_BUCKET_NAME,
                "Key": object_key,
                "ContentType": content_type,
            },
            ExpiresIn=UPLOAD_URL_EXPIRES_IN_SECONDS,
        )
    except NoCredentialsError:
        return craft_error(500, "error generating presigned URL: No AWS Credentials")
    except (ClientError, BotoCoreError) as err:
        print(f"ERROR: generate_presigned_url failed for {object_key}: {err}")
        return craft_error(500, "error generating presigned URL")
    print(f"presigned_url generated for {object_key}")

    return craft_response(
        200,
        {
            "upload_url": upload_url,
            "submission_id": submission_id,
            "expires_in": UPLOAD_URL_EXPIRES_IN_SECONDS,
        },
    )


def handle_get_request_for_status(event: Dict, status_service: StatusQueryService) -> Dict:
    submission_id = (event.get("pathParameters") or {}).get("submission_id")
    if not submission_id or not SUBMISSION_ID_PATTERN.match(submission_id):
        return craft_error(400, "a valid submission_id is required")

    try:
        report = status_service.get_status(submission_id)
    except StoreUnavailableError as err:
        print(f"ERROR: status lookup for {submission_id} failed: {err}")
        return craft_error(503, "status temporarily unavailable, please retry")

    if report is None:
        return craft_error(404, "submission not found")
    return craft_response(200, report.to_dict())


def _add_cors_headers(event: Dict, response: Dict) -> Dict:
    # Add the CORS stuff here, as I couldn't figure out it in template.yaml nor API Gateway conf.
    origin = (event.get("headers") or {}).get("origin", "unknown")
    if "*" in ALLOWED_ORIGINS:
        allowed_origin = "*"
    else:
        allowed_origin = origin if origin in ALLOWED_ORIGINS else "unknown"
    response["headers"] = {
        "Content-Type": "application/json",
        "Access-Control-Allow-Headers": "Content-Type",  # mostly for OPTIONS
        "Access-Control-Allow-Methods": "GET,POST,OPTIONS",  # mostly for OPTIONS
        "Access-Control-Allow-Origin": allowed_origin,
    }
    return response


def route_request(event: Dict, s3=None, status_service: Optional[StatusQueryService] = None) -> Dict:
    # https://docs.aws.amazon.com/lambda/latest/dg/services-apigateway.html#apigateway-example-event
    http_method = event["httpMethod"]
    api_endpoint = event.get("resource") or event["requestContext"]["resourcePath"]
    print(f"handling {http_method} {api_endpoint} request")

    if http_method == "OPTIONS":
        # AWS API Gateway requires a non-empty response body for OPTIONS requests
        return craft_response(200, {})
    if api_endpoint == ENDPOINT_UPLOAD and http_method == "POST":
        return handle_post_request_for_upload_url(event, s3 if s3 is not None else get_s3())
    if api_endpoint == ENDPOINT_STATUS and http_method == "GET":
        return handle_get_request_for_status(
            event, status_service if status_service is not None else get_status_service()
        )
    if api_endpoint in (ENDPOINT_UPLOAD, ENDPOINT_STATUS):
        return craft_error(405, "method not allowed")
    return craft_error(404, "endpoint not found")


def lambda_handler(event, context):
    response = route_request(event)
    return _add_cors_headers(event, response)
