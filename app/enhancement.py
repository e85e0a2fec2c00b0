from typing import Callable

from app.messages import DeliveryRequest, EnhancementRequest
from common.errors import StoreUnavailableError
from common.retry import RetryError, RetryPolicy, run_with_retry
from database.submission import Status, SubmissionStore

ARTICLE_PROMPT_TEMPLATE = """
You are an experienced journalist writing for a local newspaper.
Turn the following transcribed voice recording into a well structured article.

Requirements:
- Come up with a meaningful headline
- Structure the article into clear paragraphs
- Use a journalistic writing style, professional but approachable
- Fix grammar and spelling mistakes coming from the transcription
- Keep all important information, do NOT make up facts
- Format the article with simple HTML tags (h1, h2, p, ul, li, strong, em) for email display
- Output ONLY the article HTML, no preamble

Transcribed text:
{transcript}
"""


def build_article_prompt(transcript: str) -> str:
    return ARTICLE_PROMPT_TEMPLATE.format(transcript=transcript)


class EnhancementStage:
    def __init__(
        self,
        store: SubmissionStore,
        generator,  # anything with `generate(prompt) -> str`, e.g. OpenAiClient or BedrockClient
        deliver: Callable[[DeliveryRequest], None],
        retry_policy: RetryPolicy,
        sleep: Callable[[float], None],
    ):
        self.store = store
        self.generator = generator
        self.deliver = deliver
        self.retry_policy = retry_policy
        self.sleep = sleep

    def handle(self, request: EnhancementRequest) -> None:
        submission_id = request.submission_id
        if not self.store.transition(submission_id, Status.ENHANCING, retry_count=0):
            print(f"INFO: submission {submission_id} is not up for enhancement, skipping")
            return

        def _on_retry(attempt: int, err: Exception):
            self.store.update_in_status(submission_id, Status.ENHANCING, retry_count=attempt)

        prompt = build_article_prompt(request.transcript)
        try:
            content, attempts = run_with_retry(
                self.retry_policy,
                lambda: self.generator.generate(prompt),
                label=f"enhancement of {submission_id}",
                sleep=self.sleep,
                on_retry=_on_retry,
            )
        except RetryError as err:
            # Degraded success: the email still goes out, with the raw transcript.
            print(
                f"WARNING: enhancement of {submission_id} failed, falling back to transcript: {err}"
            )
            content = request.transcript
            applied = self.store.transition(
                submission_id,
                Status.ENHANCED,
                enhanced_content=content,
                error_message=f"Enhancement failed, using original transcript: {err.last_error}",
                retry_count=err.attempts,
            )
        else:
            applied = self.store.transition(
                submission_id,
                Status.ENHANCED,
                enhanced_content=content,
                retry_count=attempts,
            )

        if not applied:
            print(f"WARNING: submission {submission_id} moved on while enhancing, NOT delivering")
            return

        self._deliver(
            DeliveryRequest(
                submission_id=submission_id,
                content=content,
                transcript=request.transcript,
                metadata=request.metadata,
            )
        )

    def _deliver(self, request: DeliveryRequest) -> None:
        try:
            self.deliver(request)
        except StoreUnavailableError:
            # Outages propagate without a status write, the email may already be out.
            raise
        except Exception as err:
            print(f"ERROR: could not hand off {request.submission_id} to delivery: {err}")
            self.store.transition(
                request.submission_id,
                Status.FAILED,
                error_message=f"Could not invoke delivery: {err}",
            )
            raise
