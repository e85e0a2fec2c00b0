import time
from typing import Callable, List, Optional

from app.delivery import DeliveryStage
from app.enhancement import EnhancementStage
from app.ingestion import IngestionHandler
from app.messages import DeliveryRequest, EnhancementRequest
from app.status import StatusQueryService
from app.transcription import TranscriptionCompletionHandler
from common.aws_utils import get_boto_s3_client, is_running_in_aws
from common.bedrock_client import BedrockClient
from common.config import (
    AUDIO_BUCKET_NAME,
    GENERATIVE_BACKEND,
    RECIPIENT_EMAILS,
    TRACKING_STORE,
)
from common.openai_client import OpenAiClient
from common.retry import RetryPolicy
from common.ses_client import SesClient
from common.transcribe_client import TranscribeClient
from database.client import (
    POSTGRES_LOGIN_URL_FROM_ENV,
    connect_to_postgres_i_will_call_disconnect_i_promise,
)
from database.dynamodb import (
    DynamoDBSubmissionStore,
    create_submission_table_if_not_exists,
    get_dynamo_endpoint_url,
    get_dynamodb_resource,
)
from database.postgres_store import PostgresSubmissionStore
from database.submission import SubmissionStore


def get_store(tracking_store: str = TRACKING_STORE) -> SubmissionStore:
    if tracking_store == "dynamodb":
        endpoint_url = get_dynamo_endpoint_url()
        if is_running_in_aws():
            return DynamoDBSubmissionStore.from_table_name(endpoint_url=endpoint_url)
        # DynamoDB Local starts empty
        dynamodb = get_dynamodb_resource(endpoint_url)
        return DynamoDBSubmissionStore(create_submission_table_if_not_exists(dynamodb))
    if tracking_store == "postgres":
        # Lambda execution context will take care of this promise.
        connect_to_postgres_i_will_call_disconnect_i_promise(POSTGRES_LOGIN_URL_FROM_ENV)
        return PostgresSubmissionStore()
    raise ValueError(f"Unknown TRACKING_STORE {tracking_store}, use dynamodb or postgres")


def get_generator(generative_backend: str = GENERATIVE_BACKEND):
    if generative_backend == "openai":
        return OpenAiClient()
    if generative_backend == "bedrock":
        return BedrockClient()
    raise ValueError(
        f"Unknown GENERATIVE_BACKEND {generative_backend}, use openai or bedrock"
    )


class Pipeline:
    """
    Wires the stages together from injected capabilities:
    ingestion -> (transcription job) -> transcription completion -> enhancement -> delivery.
    Only the last three form a synchronous call chain, through `enhance` and `deliver`.
    """

    def __init__(
        self,
        store: SubmissionStore,
        transcriber,
        generator,
        transport,
        recipients: List[str],
        retry_policy: Optional[RetryPolicy] = None,
        sleep: Callable[[float], None] = time.sleep,
        s3=None,
        audio_bucket: Optional[str] = None,
    ):
        self.store = store
        retry_policy = retry_policy if retry_policy is not None else RetryPolicy()

        self.delivery = DeliveryStage(
            store=store,
            transport=transport,
            recipients=recipients,
            retry_policy=retry_policy,
            sleep=sleep,
            s3=s3,
            audio_bucket=audio_bucket,
        )
        self.enhancement = EnhancementStage(
            store=store,
            generator=generator,
            deliver=self.deliver,
            retry_policy=retry_policy,
            sleep=sleep,
        )
        self.transcription = TranscriptionCompletionHandler(
            store=store, transcriber=transcriber, enhance=self.enhance
        )
        self.ingestion = IngestionHandler(store=store, transcriber=transcriber)
        self.status = StatusQueryService(store)

    def enhance(self, request: EnhancementRequest) -> None:
        self.enhancement.handle(request)

    def deliver(self, request: DeliveryRequest) -> None:
        self.delivery.handle(request)

    @staticmethod
    def from_config() -> "Pipeline":
        print("Initializing pipeline from config")
        s3 = get_boto_s3_client()
        return Pipeline(
            store=get_store(),
            transcriber=TranscribeClient(s3=s3),
            generator=get_generator(),
            transport=SesClient(),
            recipients=RECIPIENT_EMAILS,
            s3=s3,
            audio_bucket=AUDIO_BUCKET_NAME,
        )
