import os
from typing import Optional

from dotenv import load_dotenv
from peewee import Database, DatabaseProxy, PostgresqlDatabase, SqliteDatabase

# The DatabaseProxy simply defers the configuration of the database until a later time,
# but all interaction with the database (like connecting) should be done via the actual Database instance.
database_proxy = DatabaseProxy()
_database: Optional[Database] = None

load_dotenv()
# Only needed with TRACKING_STORE=postgres
POSTGRES_LOGIN_URL_FROM_ENV = os.environ.get("POSTGRES_LOGIN_URL_FROM_ENV")


def _remove_postgres_scheme(postgres_login_url):
    url = None
    if postgres_login_url.startswith("postgresql://"):
        url = postgres_login_url[13:]  # remove scheme
    elif postgres_login_url.startswith("postgres://"):
        url = postgres_login_url[11:]  # remove scheme

    if url is None:
        raise ValueError(
            "Invalid postgres login url, must start with postgres:// or postgresql://"
        )

    return url


def _get_postgres_kwargs(postgres_login_url):
    if postgres_login_url is None:
        raise ValueError("postgres_login_url is required, None given")

    # NOTE: Not using urlparse as some passwords might contain wildcards like ? or &
    url = _remove_postgres_scheme(postgres_login_url)
    user, rest = url.rsplit("@", 1)
    login, password = user.split(":", 1)

    host_port, database_name = rest.split("/", 1)
    host, port = host_port.split(":") if ":" in host_port else (host_port, "5432")

    return {
        "database": database_name,
        "user": login,
        "password": password,
        "host": host,
        "port": int(port),  # convert string to int
    }


def _is_database_connected():
    return _database is not None and not _database.is_closed()


def _initialize(database: Database) -> Database:
    global _database
    _database = database
    _database.connect()
    database_proxy.initialize(_database)
    return _database


# Prefer using `with connect_to_postgres` when you can.
# Only use the return value if you know what you are doing.
def connect_to_postgres_i_will_call_disconnect_i_promise(
    postgres_login_url: str,
) -> Database:
    if _is_database_connected():
        print("database connection already initialized, skipping")
        return _database

    kwargs = _get_postgres_kwargs(postgres_login_url)
    print(
        f"postgres login url parsed into {kwargs['host']} port {kwargs['port']} for db {kwargs['database']}"
    )

    print("connecting to postgres")
    database = _initialize(PostgresqlDatabase(**kwargs))
    database.execute_sql("SELECT 1")
    return database


# Local development and tests, same models but no server needed.
def connect_to_sqlite_i_will_call_disconnect_i_promise(path: str = ":memory:") -> Database:
    if _is_database_connected():
        disconnect_from_database_as_i_promised()
    print(f"connecting to sqlite {path}")
    return _initialize(SqliteDatabase(path, pragmas={"foreign_keys": 1}))


def disconnect_from_database_as_i_promised():
    global _database
    if _database is not None:
        _database.close()
    _database = None

