import os
import re
from typing import Optional, Tuple
from urllib.parse import unquote

import boto3
from botocore.config import Config

from common.config import (
    AWS_CONNECT_TIMEOUT_SECONDS,
    AWS_READ_TIMEOUT_SECONDS,
    DEFAULT_REGION,
)


# All AWS calls are bounded, and botocore's own retries are off as our RetryPolicy owns that.
def get_boto_config(read_timeout: int = AWS_READ_TIMEOUT_SECONDS) -> Config:
    return Config(
        connect_timeout=AWS_CONNECT_TIMEOUT_SECONDS,
        read_timeout=read_timeout,
        retries={"max_attempts": 1},
    )


def get_boto_client(service_name: str, read_timeout: int = AWS_READ_TIMEOUT_SECONDS):
    return boto3.client(
        service_name,
        region_name=DEFAULT_REGION,
        config=get_boto_config(read_timeout=read_timeout),
    )


def get_boto_s3_client():
    return get_boto_client("s3")


def get_s3_uri(bucket: str, key: str) -> str:
    return f"s3://{bucket}/{key}"


S3_URI_PATTERN = re.compile(r"^s3://([^/]+)/(.+)$")
# https://s3.us-west-2.amazonaws.com/bucket/key (what Transcribe reports)
S3_PATH_STYLE_PATTERN = re.compile(r"^https://s3[.-]([^.]+)\.amazonaws\.com/([^/]+)/(.+)$")
# https://bucket.s3.us-west-2.amazonaws.com/key
S3_VIRTUAL_HOST_PATTERN = re.compile(r"^https://([^.]+)\.s3[.-]([^.]+)\.amazonaws\.com/(.+)$")


def parse_s3_location(uri: str) -> Optional[Tuple[str, str]]:
    """Returns (bucket, key) for the s3:// and both https:// flavours, None if not an S3 location."""
    match = S3_URI_PATTERN.match(uri)
    if match:
        return match.group(1), match.group(2)
    match = S3_PATH_STYLE_PATTERN.match(uri)
    if match:
        return match.group(2), unquote(match.group(3))
    match = S3_VIRTUAL_HOST_PATTERN.match(uri)
    if match:
        return match.group(1), unquote(match.group(3))
    return None


def is_running_in_aws():
    if "AWS_LAMBDA_FUNCTION_NAME" in os.environ:
        # Running in AWS Lambda
        return True

    if "AWS_EXECUTION_ENV" in os.environ and "AWS" in os.environ["AWS_EXECUTION_ENV"]:
        # Running in an AWS environment (e.g., EC2, ECS, AWS Batch)
        return True

    return False
