import os

from dotenv import load_dotenv

load_dotenv()

ENV = os.environ.get("ENV")  # prod, local, test

# AWS stuff
DEFAULT_REGION = os.environ.get("AWS_REGION", "us-west-2")
# Bounds every single boto3 call, our own retry policy does the retrying.
AWS_CONNECT_TIMEOUT_SECONDS = int(os.environ.get("AWS_CONNECT_TIMEOUT_SECONDS", 5))
AWS_READ_TIMEOUT_SECONDS = int(os.environ.get("AWS_READ_TIMEOUT_SECONDS", 30))

AUDIO_BUCKET_NAME = os.environ.get("AUDIO_BUCKET_NAME", "speech-to-email-audio")
AUDIO_OBJECT_PREFIX = "audio-files"
TRANSCRIPTS_OBJECT_PREFIX = "transcriptions"
UPLOAD_URL_EXPIRES_IN_SECONDS = 3600  # 1 hour
AUDIO_LINK_EXPIRES_IN_SECONDS = 7 * 24 * 3600  # 7 days, max for SigV4
MAX_UPLOAD_FILE_SIZE_BYTES = 50 * 1024 * 1024  # 50MB

# TRACKING STORE
TRACKING_STORE = os.environ.get("TRACKING_STORE", "dynamodb")  # dynamodb, postgres
DYNAMODB_TABLE_NAME = os.environ.get("DYNAMODB_TABLE_NAME", "SpeechToEmail_Submission")

# TRANSCRIBE STUFF
TRANSCRIBE_JOB_NAME_PREFIX = "speech-to-email"
TRANSCRIBE_LANGUAGE_CODE = os.environ.get("TRANSCRIBE_LANGUAGE_CODE", "en-US")
TRANSCRIBE_MAX_SPEAKER_LABELS = 2

# GENERATIVE STUFF
GENERATIVE_BACKEND = os.environ.get("GENERATIVE_BACKEND", "openai")  # openai, bedrock
OPEN_AI_API_KEY: str = os.environ.get("OPEN_AI_API_KEY")
OPEN_AI_MODEL = os.environ.get("OPEN_AI_MODEL", "gpt-4o")
BEDROCK_MODEL_ID = os.environ.get(
    "BEDROCK_MODEL_ID", "anthropic.claude-3-7-sonnet-20250219-v1:0"
)
GENERATIVE_MAX_TOKENS = 4000
# Lower temperature for more consistent, professional output
GENERATIVE_TEMPERATURE = 0.2
GENERATIVE_TOP_P = 0.9
GENERATIVE_TIMEOUT_SECONDS = int(os.environ.get("GENERATIVE_TIMEOUT_SECONDS", 120))

# EMAIL Stuff
SENDER_EMAIL = os.environ.get(
    "SENDER_EMAIL", "Speech To Email <noreply@speech-to-email.com>"
)  # From:
RECIPIENT_EMAILS = [
    email.strip()
    for email in os.environ.get("RECIPIENT_EMAIL", "").split(",")
    if email.strip()
]
SES_CONFIGURATION_SET = os.environ.get(
    "SES_CONFIGURATION_SET", "speech-to-email-config-set"
)

# RETRY STUFF, shared by the enhancement and delivery stages
MAX_ATTEMPTS = int(os.environ.get("MAX_ATTEMPTS", 3))
BACKOFF_BASE_SECONDS = float(os.environ.get("BACKOFF_BASE_SECONDS", 2))

# API STUFF
ALLOWED_ORIGINS = ["*"]
