import io
import json
from email import message_from_string

import boto3
import pytest
from botocore.exceptions import ClientError, ReadTimeoutError
from botocore.stub import ANY, Stubber

from common.aws_utils import parse_s3_location
from common.bedrock_client import BedrockClient
from common.errors import DeliveryError, ErrorKind, GenerationError, classify_boto_error
from common.ses_client import SesClient, create_raw_email


def _client_error(code, status_code=400):
    return ClientError(
        {"Error": {"Code": code}, "ResponseMetadata": {"HTTPStatusCode": status_code}},
        "Operation",
    )


def test_classify_boto_error():
    test_cases = {
        "ses throttling": (_client_error("Throttling"), ErrorKind.RATE_LIMITED),
        "bedrock throttling": (_client_error("ThrottlingException"), ErrorKind.RATE_LIMITED),
        "service unavailable": (_client_error("ServiceUnavailable", 503), ErrorKind.TRANSIENT),
        "unknown 5xx": (_client_error("Whatever", 502), ErrorKind.TRANSIENT),
        "unknown 429": (_client_error("Whatever", 429), ErrorKind.RATE_LIMITED),
        "validation": (_client_error("ValidationException"), ErrorKind.PERMANENT),
        "message rejected": (_client_error("MessageRejected"), ErrorKind.PERMANENT),
        "read timeout": (ReadTimeoutError(endpoint_url="https://x"), ErrorKind.TRANSIENT),
        "not a boto error": (ValueError("nope"), ErrorKind.PERMANENT),
    }
    for name, (err, expected) in test_cases.items():
        print(f"test_case: {name}")
        assert classify_boto_error(err) == expected


def test_parse_s3_location():
    assert parse_s3_location("s3://bucket/a/b.json") == ("bucket", "a/b.json")
    assert parse_s3_location(
        "https://s3.us-west-2.amazonaws.com/bucket/transcriptions/abc.json"
    ) == ("bucket", "transcriptions/abc.json")
    assert parse_s3_location(
        "https://bucket.s3.us-west-2.amazonaws.com/transcriptions/a%20b.json"
    ) == ("bucket", "transcriptions/a b.json")
    assert parse_s3_location("https://example.com/file.json") is None


class FakeBedrockRuntime:
    def __init__(self, outcome):
        self.outcome = outcome
        self.kwargs = None

    def invoke_model(self, **kwargs):
        self.kwargs = kwargs
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return {"body": io.BytesIO(json.dumps(self.outcome).encode("utf-8"))}


def test_bedrock_generate():
    runtime = FakeBedrockRuntime(
        {
            "content": [{"type": "text", "text": "<h1>Article</h1>"}],
            "usage": {"input_tokens": 10, "output_tokens": 20},
        }
    )
    client = BedrockClient(bedrock_runtime=runtime, model_id="anthropic.test")

    assert client.generate("write it") == "<h1>Article</h1>"

    request = json.loads(runtime.kwargs["body"])
    assert runtime.kwargs["modelId"] == "anthropic.test"
    assert request["anthropic_version"] == "bedrock-2023-05-31"
    assert request["messages"] == [{"role": "user", "content": "write it"}]
    assert request["max_tokens"] == 4000


def test_bedrock_errors_are_classified():
    client = BedrockClient(bedrock_runtime=FakeBedrockRuntime(_client_error("ThrottlingException")))
    with pytest.raises(GenerationError) as exc_info:
        client.generate("write it")
    assert exc_info.value.kind == ErrorKind.RATE_LIMITED

    client = BedrockClient(bedrock_runtime=FakeBedrockRuntime({"content": []}))
    with pytest.raises(GenerationError) as exc_info:
        client.generate("write it")
    assert exc_info.value.kind == ErrorKind.PERMANENT


def test_create_raw_email():
    msg = create_raw_email(
        "sender@example.com", ["a@example.com", "b@example.com"], "Subject", "<p>hi</p>", "hi"
    )
    parsed = message_from_string(msg.as_string())

    assert parsed["To"] == "a@example.com, b@example.com"
    assert parsed.get_content_type() == "multipart/alternative"
    assert [part.get_content_type() for part in parsed.get_payload()] == [
        "text/plain",
        "text/html",
    ]


def test_ses_send():
    ses = boto3.client("ses", region_name="us-west-2")
    with Stubber(ses) as stub:
        stub.add_response(
            "send_raw_email",
            {"MessageId": "ses-message-1"},
            {
                "Source": "sender@example.com",
                "Destinations": ["editor@example.com"],
                "RawMessage": {"Data": ANY},
                "ConfigurationSetName": "config-set",
            },
        )
        client = SesClient(ses=ses, sender="sender@example.com", configuration_set="config-set")

        assert client.send(["editor@example.com"], "Subject", "<p>hi</p>", "hi") == "ses-message-1"
        stub.assert_no_pending_responses()


def test_ses_errors_are_classified():
    ses = boto3.client("ses", region_name="us-west-2")
    with Stubber(ses) as stub:
        stub.add_client_error("send_raw_email", service_error_code="Throttling", http_status_code=400)
        stub.add_client_error(
            "send_raw_email", service_error_code="MessageRejected", http_status_code=400
        )
        client = SesClient(ses=ses, sender="sender@example.com", configuration_set=None)

        with pytest.raises(DeliveryError) as exc_info:
            client.send(["editor@example.com"], "Subject", "<p>hi</p>", "hi")
        assert exc_info.value.kind == ErrorKind.RATE_LIMITED

        with pytest.raises(DeliveryError) as exc_info:
            client.send(["editor@example.com"], "Subject", "<p>hi</p>", "hi")
        assert exc_info.value.kind == ErrorKind.PERMANENT


def test_ses_without_recipients_is_permanent():
    client = SesClient(ses=object(), sender="sender@example.com")
    with pytest.raises(DeliveryError) as exc_info:
        client.send([], "Subject", "<p>hi</p>", "hi")
    assert not exc_info.value.retryable
