from typing import Callable, List, Optional

from app.emails import format_delivery_email, get_audio_link
from app.messages import DeliveryRequest
from common.retry import RetryError, RetryPolicy, run_with_retry
from database.submission import Status, SubmissionStore


class DeliveryStage:
    """Last stage: emails the article and closes the submission as delivered or failed."""

    def __init__(
        self,
        store: SubmissionStore,
        transport,  # anything with `send(destination, subject, html_body, text_body) -> str`
        recipients: List[str],
        retry_policy: RetryPolicy,
        sleep: Callable[[float], None],
        s3=None,
        audio_bucket: Optional[str] = None,
    ):
        self.store = store
        self.transport = transport
        self.recipients = recipients
        self.retry_policy = retry_policy
        self.sleep = sleep
        self.s3 = s3
        self.audio_bucket = audio_bucket

    def handle(self, request: DeliveryRequest) -> None:
        submission_id = request.submission_id
        submission = self.store.get(submission_id)
        if submission is None:
            print(f"ERROR: submission {submission_id} not found, NOT delivering")
            return
        if submission.status != Status.ENHANCED:
            print(
                f"INFO: submission {submission_id} is {submission.status.value}, "
                f"only enhanced submissions get delivered"
            )
            return

        audio_url = get_audio_link(self.s3, self.audio_bucket, request.metadata.source_key)
        email = format_delivery_email(request, audio_url=audio_url)

        self.store.update_in_status(submission_id, Status.ENHANCED, retry_count=0)

        def _on_retry(attempt: int, err: Exception):
            self.store.update_in_status(submission_id, Status.ENHANCED, retry_count=attempt)

        try:
            delivery_reference, attempts = run_with_retry(
                self.retry_policy,
                lambda: self.transport.send(
                    self.recipients, email.subject, email.html_body, email.text_body
                ),
                label=f"delivery of {submission_id}",
                sleep=self.sleep,
                on_retry=_on_retry,
            )
        except RetryError as err:
            print(f"ERROR: delivery of {submission_id} failed: {err}")
            self.store.transition(
                submission_id,
                Status.FAILED,
                error_message=f"Delivery failed: {err.last_error}",
                retry_count=err.attempts,
            )
            return

        self.store.transition(
            submission_id,
            Status.DELIVERED,
            delivery_reference=delivery_reference,
            retry_count=attempts,
        )
