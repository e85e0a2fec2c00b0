# Putting it top-level, as pytest will search parent directories for `conftest.py`
import os

# Must happen before anything imports common.config
os.environ.setdefault("ENV", "test")
# boto3 clients need a region and (fake) credentials even when stubbed
os.environ.setdefault("AWS_DEFAULT_REGION", "us-west-2")
os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")

import pytest  # noqa: E402

from common.config import ENV  # noqa: E402
from database.client import (  # noqa: E402
    connect_to_sqlite_i_will_call_disconnect_i_promise,
    disconnect_from_database_as_i_promised,
)
from database.postgres_store import PostgresSubmissionStore, SubmissionRow  # noqa: E402


def pytest_sessionstart(session):
    assert ENV in (
        "local",
        "test",
    ), "Tests should only run in 'local' or 'test' environments. Current ENV: {}".format(
        ENV
    )


@pytest.fixture
def sqlite_store():
    db = connect_to_sqlite_i_will_call_disconnect_i_promise()
    db.create_tables([SubmissionRow])

    yield PostgresSubmissionStore()

    db.drop_tables([SubmissionRow])
    disconnect_from_database_as_i_promised()
