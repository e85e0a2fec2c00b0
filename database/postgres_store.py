import datetime
from typing import Any, Dict, Iterable, Optional

import pytz
from peewee import DatabaseError, IntegrityError, InterfaceError

from common.errors import StoreUnavailableError
from database.models import BaseSubmission
from database.submission import Status, Submission, SubmissionStore


# Columns are `timestamp without time zone`, we always keep UTC in there.
def _to_db_datetime(value: Optional[datetime.datetime]) -> Optional[datetime.datetime]:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(pytz.UTC).replace(tzinfo=None)


def _from_db_datetime(value) -> Optional[datetime.datetime]:
    if value is None:
        return None
    if isinstance(value, str):
        value = datetime.datetime.fromisoformat(value)
    if value.tzinfo is None:
        return pytz.UTC.localize(value)
    return value.astimezone(pytz.UTC)


def _to_db_value(value: Any) -> Any:
    if isinstance(value, Status):
        return value.value
    if isinstance(value, datetime.datetime):
        return _to_db_datetime(value)
    return value


class SubmissionRow(BaseSubmission):
    class Meta:
        table_name = "submission"

    def to_submission(self) -> Submission:
        return Submission(
            id=self.id,
            source_key=self.source_key,
            status=Status(self.status),
            transcript=self.transcript,
            enhanced_content=self.enhanced_content,
            error_message=self.error_message,
            retry_count=self.retry_count or 0,
            created_at=_from_db_datetime(self.created_at),
            updated_at=_from_db_datetime(self.updated_at),
            completed_at=_from_db_datetime(self.completed_at),
            job_reference=self.job_reference,
            delivery_reference=self.delivery_reference,
        )


class PostgresSubmissionStore(SubmissionStore):
    """Peewee backed store, works on anything `database_proxy` is initialized with."""

    def insert_if_absent(self, submission: Submission) -> bool:
        row = {
            name: _to_db_value(value) for name, value in submission.to_dict().items()
        }
        try:
            with SubmissionRow._meta.database.atomic():
                SubmissionRow.insert(**row).execute()
        except IntegrityError:
            print(
                f"INFO: submission {submission.id} for {submission.source_key} already exists"
            )
            return False
        except (InterfaceError, DatabaseError) as err:
            raise StoreUnavailableError(
                f"could not insert submission {submission.id}: {err}"
            ) from err
        print(f"Postgres: created submission {submission.id}")
        return True

    def update(
        self,
        submission_id: str,
        fields: Dict[str, Any],
        allowed_from: Iterable[Status],
    ) -> bool:
        allowed_values = [status.value for status in allowed_from]
        columns = {
            getattr(SubmissionRow, name): _to_db_value(value)
            for name, value in fields.items()
        }
        try:
            num_updated = (
                SubmissionRow.update(columns)
                .where(
                    SubmissionRow.id == submission_id,
                    SubmissionRow.status.in_(allowed_values),
                )
                .execute()
            )
        except (InterfaceError, DatabaseError) as err:
            raise StoreUnavailableError(
                f"could not update submission {submission_id}: {err}"
            ) from err
        return num_updated > 0

    def get(self, submission_id: str) -> Optional[Submission]:
        try:
            row = SubmissionRow.get_or_none(SubmissionRow.id == submission_id)
        except (InterfaceError, DatabaseError) as err:
            raise StoreUnavailableError(
                f"could not read submission {submission_id}: {err}"
            ) from err
        if row is None:
            print(f"Postgres: submission {submission_id} NOT found")
            return None
        return row.to_submission()
