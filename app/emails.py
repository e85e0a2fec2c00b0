import datetime
import html
from dataclasses import dataclass
from typing import Optional

from botocore.exceptions import BotoCoreError, ClientError
from bs4 import BeautifulSoup

from app.email_template import (
    audio_link_template,
    full_template,
    main_content_template,
    table_row_template,
    table_template,
    transcript_template,
)
from app.messages import DeliveryRequest
from common.config import AUDIO_LINK_EXPIRES_IN_SECONDS
from common.utils import utc_now

NO_ARTICLE_TEXT = "No article available"
NO_TRANSCRIPT_TEXT = "No transcript available"


@dataclass
class FormattedEmail:
    subject: str
    html_body: str
    text_body: str


def _format_datetime(dt: Optional[datetime.datetime]) -> str:
    if dt is None:
        return "unknown"
    return dt.strftime("%B %d, %Y %H:%M UTC")


def format_subject(request: DeliveryRequest) -> str:
    metadata = request.metadata
    return f"Article: {metadata.original_file_name} - {_format_datetime(metadata.created_at)}"


def html_to_text(html_content: str) -> str:
    soup = BeautifulSoup(html_content, "html.parser")
    # Keep block elements on their own lines.
    text = soup.get_text(separator="\n")
    lines = [line.strip() for line in text.splitlines()]
    return "\n".join(line for line in lines if line)


def plain_text_to_html(text: str) -> str:
    paragraphs = [line.strip() for line in text.splitlines() if line.strip()]
    return "".join(f"<p>{html.escape(paragraph)}</p>" for paragraph in paragraphs)


def _format_article_html(request: DeliveryRequest) -> str:
    if not request.content:
        return NO_ARTICLE_TEXT
    # Enhancement fell back to the raw transcript, which is not html.
    if request.content == request.transcript:
        return plain_text_to_html(request.content)
    return request.content


def _format_metadata_rows(request: DeliveryRequest, processed_at: datetime.datetime) -> str:
    rows = [
        ("File", html.escape(request.metadata.original_file_name)),
        ("Recorded", _format_datetime(request.metadata.created_at)),
        ("Submission ID", html.escape(request.submission_id)),
        ("Processed", _format_datetime(processed_at)),
    ]
    return "".join(table_row_template.format(label=label, value=value) for label, value in rows)


def format_html_body(
    request: DeliveryRequest,
    audio_url: Optional[str] = None,
    processed_at: Optional[datetime.datetime] = None,
) -> str:
    processed_at = processed_at or utc_now()
    # The article is html already, the transcript is raw text.
    if request.transcript:
        transcript_html = html.escape(request.transcript)
    else:
        transcript_html = NO_TRANSCRIPT_TEXT
    audio_link_html = ""
    if audio_url:
        audio_link_html = audio_link_template.format(
            audio_url=html.escape(audio_url, quote=True),
            expires_in_days=AUDIO_LINK_EXPIRES_IN_SECONDS // (24 * 3600),
        )

    return full_template.format(
        title="Your article is ready",
        metadata=table_template.format(
            heading="Details", rows=_format_metadata_rows(request, processed_at)
        ),
        content=main_content_template(content=_format_article_html(request)),
        transcript=transcript_template.format(transcript=transcript_html),
        audio_link=audio_link_html,
    )


def format_text_body(
    request: DeliveryRequest,
    audio_url: Optional[str] = None,
    processed_at: Optional[datetime.datetime] = None,
) -> str:
    processed_at = processed_at or utc_now()
    if not request.content:
        article_text = NO_ARTICLE_TEXT
    elif request.content == request.transcript:
        article_text = request.content
    else:
        article_text = html_to_text(request.content)
    parts = [
        "Your article is ready",
        "",
        f"File: {request.metadata.original_file_name}",
        f"Recorded: {_format_datetime(request.metadata.created_at)}",
        f"Submission ID: {request.submission_id}",
        f"Processed: {_format_datetime(processed_at)}",
        "",
        "ARTICLE:",
        article_text,
        "",
        "ORIGINAL TRANSCRIPT:",
        request.transcript or NO_TRANSCRIPT_TEXT,
    ]
    if audio_url:
        parts += [
            "",
            f"Listen to the original recording: {audio_url}",
            f"(This link expires in {AUDIO_LINK_EXPIRES_IN_SECONDS // (24 * 3600)} days.)",
        ]
    parts += ["", "---", "This email was generated automatically by the Speech to Email pipeline."]
    return "\n".join(parts)


def format_delivery_email(
    request: DeliveryRequest, audio_url: Optional[str] = None
) -> FormattedEmail:
    processed_at = utc_now()
    return FormattedEmail(
        subject=format_subject(request),
        html_body=format_html_body(request, audio_url, processed_at),
        text_body=format_text_body(request, audio_url, processed_at),
    )


# The link is a nice-to-have, so failing to sign it never blocks the email.
def get_audio_link(s3, bucket: Optional[str], key: str) -> Optional[str]:
    if s3 is None or not bucket:
        return None
    try:
        return s3.generate_presigned_url(
            "get_object",
            Params={"Bucket": bucket, "Key": key},
            ExpiresIn=AUDIO_LINK_EXPIRES_IN_SECONDS,
        )
    except (ClientError, BotoCoreError) as err:
        print(f"WARNING: could not generate audio link for s3://{bucket}/{key}: {err}")
        return None
