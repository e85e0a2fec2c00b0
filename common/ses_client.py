from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import List, Optional

from botocore.exceptions import BotoCoreError, ClientError

from common.aws_utils import get_boto_client
from common.config import SENDER_EMAIL, SES_CONFIGURATION_SET
from common.errors import DeliveryError, classify_boto_error
from common.utils import Timer


def create_raw_email(
    sender: str, to: List[str], subject: str, body_html: str, body_text: str
) -> MIMEMultipart:
    # Plain text first, email clients pick the last part they can render.
    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = sender
    msg["To"] = ", ".join(to)
    msg.attach(MIMEText(body_text, "plain", "utf-8"))
    msg.attach(MIMEText(body_html, "html", "utf-8"))
    return msg


class SesClient:
    def __init__(
        self,
        ses=None,
        sender: str = SENDER_EMAIL,
        configuration_set: Optional[str] = SES_CONFIGURATION_SET,
    ):
        self.ses = ses if ses is not None else get_boto_client("ses")
        self.sender = sender
        self.configuration_set = configuration_set

    def send(self, destination: List[str], subject: str, html_body: str, text_body: str) -> str:
        if not destination:
            raise DeliveryError("no recipients configured, set RECIPIENT_EMAIL")
        raw_email = create_raw_email(self.sender, destination, subject, html_body, text_body)
        print(f"Sending email from {self.sender} to {destination} with subject {subject}")

        kwargs = {}
        if self.configuration_set:
            kwargs["ConfigurationSetName"] = self.configuration_set
        try:
            with Timer("SES SendRawEmail"):
                response = self.ses.send_raw_email(
                    Source=self.sender,
                    # TIL, list(str) returns characters, instead of having a single entry list [str]
                    Destinations=list(destination),
                    RawMessage={"Data": raw_email.as_string()},
                    **kwargs,
                )
        except (ClientError, BotoCoreError) as err:
            raise DeliveryError(
                f"email with subject {subject} failed to send: {err}",
                classify_boto_error(err),
            ) from err

        message_id = response["MessageId"]
        print(f"Email sent! Message ID: {message_id}, Subject: {subject}")
        return message_id
