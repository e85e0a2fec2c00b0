import json

from botocore.exceptions import BotoCoreError, ClientError

from common.aws_utils import get_boto_client
from common.config import (
    BEDROCK_MODEL_ID,
    GENERATIVE_MAX_TOKENS,
    GENERATIVE_TEMPERATURE,
    GENERATIVE_TIMEOUT_SECONDS,
    GENERATIVE_TOP_P,
)
from common.errors import ErrorKind, GenerationError, classify_boto_error
from common.utils import Timer, truncate_string

ANTHROPIC_VERSION = "bedrock-2023-05-31"


class BedrockClient:
    """Anthropic models through Amazon Bedrock, same `generate` contract as OpenAiClient."""

    def __init__(self, bedrock_runtime=None, model_id: str = BEDROCK_MODEL_ID):
        print(f"BedrockClient init with model {model_id}")
        self.bedrock_runtime = (
            bedrock_runtime
            if bedrock_runtime is not None
            else get_boto_client("bedrock-runtime", read_timeout=GENERATIVE_TIMEOUT_SECONDS)
        )
        self.model_id = model_id

    def generate(self, prompt: str) -> str:
        request = {
            "anthropic_version": ANTHROPIC_VERSION,
            "max_tokens": GENERATIVE_MAX_TOKENS,
            "temperature": GENERATIVE_TEMPERATURE,
            "top_p": GENERATIVE_TOP_P,
            "messages": [{"role": "user", "content": prompt}],
        }
        print(f"Asking {self.model_id} for: {truncate_string(prompt.replace(chr(10), ' '))}")

        try:
            with Timer(f"{self.model_id} InvokeModel"):
                response = self.bedrock_runtime.invoke_model(
                    modelId=self.model_id,
                    contentType="application/json",
                    accept="application/json",
                    body=json.dumps(request),
                )
                response_body = json.loads(response["body"].read())
        except (ClientError, BotoCoreError) as err:
            raise GenerationError(
                f"{self.model_id} request failed: {err}", classify_boto_error(err)
            ) from err
        except ValueError as err:
            raise GenerationError(
                f"{self.model_id} returned invalid json: {err}", ErrorKind.PERMANENT
            ) from err

        content = response_body.get("content") or []
        texts = [part.get("text", "") for part in content if part.get("type") == "text"]
        result = "".join(texts).strip()
        if not result:
            raise GenerationError(f"{self.model_id} returned no content", ErrorKind.PERMANENT)

        print(f"Token usage {json.dumps(response_body.get('usage', {}))}")
        return result
