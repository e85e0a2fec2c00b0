import enum

from botocore.exceptions import (
    ClientError,
    ConnectionClosedError,
    ConnectTimeoutError,
    EndpointConnectionError,
    ReadTimeoutError,
)


class ErrorKind(enum.Enum):
    RATE_LIMITED = "rate_limited"
    TRANSIENT = "transient"
    PERMANENT = "permanent"


# NOTE: Codes differ per AWS service (SES says "Throttling", Bedrock says "ThrottlingException").
RATE_LIMITED_ERROR_CODES = {
    "Throttling",
    "ThrottlingException",
    "TooManyRequestsException",
    "ProvisionedThroughputExceededException",
    "RequestLimitExceeded",
    "LimitExceededException",
    "SlowDown",
}
TRANSIENT_ERROR_CODES = {
    "ServiceUnavailable",
    "ServiceUnavailableException",
    "InternalServerException",
    "InternalServerError",
    "InternalFailure",
    "InternalError",
    "ModelNotReadyException",
    "ModelTimeoutException",
    "RequestTimeout",
    "RequestTimeoutException",
}


class ClassifiedError(Exception):
    """An error from an external capability, tagged with whether it is worth retrying."""

    def __init__(self, message: str, kind: ErrorKind = ErrorKind.PERMANENT):
        super().__init__(message)
        self.kind = kind

    @property
    def retryable(self) -> bool:
        return self.kind in (ErrorKind.RATE_LIMITED, ErrorKind.TRANSIENT)

    def __str__(self):
        return f"{super().__str__()} ({self.kind.value})"


class TranscriptionJobError(ClassifiedError):
    pass


# A malformed artifact is not expected to heal with retries, so always permanent.
class ArtifactUnreadableError(ClassifiedError):
    def __init__(self, message: str):
        super().__init__(message, ErrorKind.PERMANENT)


class GenerationError(ClassifiedError):
    pass


class DeliveryError(ClassifiedError):
    pass


# Never retried by a stage, the invoking event system is responsible for re-delivery.
class StoreUnavailableError(Exception):
    pass


def classify_boto_error(err: Exception) -> ErrorKind:
    if isinstance(err, (ReadTimeoutError, ConnectTimeoutError)):
        return ErrorKind.TRANSIENT
    if isinstance(err, (EndpointConnectionError, ConnectionClosedError)):
        return ErrorKind.TRANSIENT

    if isinstance(err, ClientError):
        error_code = err.response.get("Error", {}).get("Code", "")
        if error_code in RATE_LIMITED_ERROR_CODES:
            return ErrorKind.RATE_LIMITED
        if error_code in TRANSIENT_ERROR_CODES:
            return ErrorKind.TRANSIENT
        status_code = err.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
        if status_code == 429:
            return ErrorKind.RATE_LIMITED
        if status_code is not None and status_code >= 500:
            return ErrorKind.TRANSIENT

    return ErrorKind.PERMANENT
