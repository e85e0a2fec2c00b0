import datetime
from typing import Any, Dict, Iterable, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from common.aws_utils import get_boto_config, is_running_in_aws
from common.config import DEFAULT_REGION, DYNAMODB_TABLE_NAME
from common.errors import StoreUnavailableError
from database.submission import SUBMISSION_FIELDS, Status, Submission, SubmissionStore

DYNAMO_URL_PROD = f"https://dynamodb.{DEFAULT_REGION}.amazonaws.com"
PARTITION_KEY = "id"

DATETIME_FIELDS = ("created_at", "updated_at", "completed_at")


def get_dynamo_endpoint_url(port=8000):
    if is_running_in_aws():
        return DYNAMO_URL_PROD
    else:
        return f"http://localhost:{port}"


def get_dynamodb_resource(endpoint_url: Optional[str] = None):
    return boto3.resource(
        "dynamodb",
        region_name=DEFAULT_REGION,
        endpoint_url=endpoint_url,
        config=get_boto_config(),
    )


def submission_to_item(submission: Submission) -> Dict[str, Any]:
    item = {}
    for name, value in submission.to_dict().items():
        if value is None:
            # DynamoDB does not like empty attributes, missing means None.
            continue
        item[name] = _to_item_value(value)
    return item


def item_to_submission(item: Dict[str, Any]) -> Submission:
    kwargs = {name: item.get(name) for name in SUBMISSION_FIELDS}
    kwargs["status"] = Status(kwargs["status"])
    # Numbers come back as Decimal.
    kwargs["retry_count"] = int(kwargs.get("retry_count") or 0)
    for name in DATETIME_FIELDS:
        if kwargs[name] is not None:
            kwargs[name] = datetime.datetime.fromisoformat(kwargs[name])
    return Submission(**kwargs)


def _to_item_value(value: Any) -> Any:
    if isinstance(value, Status):
        return value.value
    if isinstance(value, datetime.datetime):
        return value.isoformat()
    return value


def _is_conditional_check_failed(err: ClientError) -> bool:
    return err.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException"


class DynamoDBSubmissionStore(SubmissionStore):
    def __init__(self, table):
        self.table = table

    @staticmethod
    def from_table_name(table_name: str = DYNAMODB_TABLE_NAME, endpoint_url: Optional[str] = None):
        dynamodb = get_dynamodb_resource(endpoint_url)
        return DynamoDBSubmissionStore(dynamodb.Table(table_name))

    def insert_if_absent(self, submission: Submission) -> bool:
        item = submission_to_item(submission)
        try:
            self.table.put_item(
                Item=item,
                # Only create if doesn't exist, this is what makes ingestion idempotent.
                ConditionExpression="attribute_not_exists(#pk)",
                ExpressionAttributeNames={"#pk": PARTITION_KEY},
            )
        except ClientError as err:
            if _is_conditional_check_failed(err):
                print(
                    f"INFO: DynamoDB: submission {submission.id} already exists, skipping"
                )
                return False
            raise StoreUnavailableError(
                f"could not put submission {submission.id} into {self.table.table_name}: {err}"
            ) from err
        except BotoCoreError as err:
            raise StoreUnavailableError(
                f"could not put submission {submission.id} into {self.table.table_name}: {err}"
            ) from err

        print(f"DynamoDB: created submission {submission.id}")
        return True

    def update(
        self,
        submission_id: str,
        fields: Dict[str, Any],
        allowed_from: Iterable[Status],
    ) -> bool:
        allowed_from = sorted(status.value for status in allowed_from)
        names = {"#pk": PARTITION_KEY, "#status": "status"}
        values = {}
        set_parts = []
        remove_parts = []
        for i, (name, value) in enumerate(sorted(fields.items())):
            names[f"#f{i}"] = name
            if value is None:
                remove_parts.append(f"#f{i}")
            else:
                values[f":v{i}"] = _to_item_value(value)
                set_parts.append(f"#f{i} = :v{i}")

        allowed_placeholders = []
        for i, status_value in enumerate(allowed_from):
            values[f":allowed{i}"] = status_value
            allowed_placeholders.append(f":allowed{i}")

        update_expression = ""
        if set_parts:
            update_expression += "SET " + ", ".join(set_parts)
        if remove_parts:
            update_expression += " REMOVE " + ", ".join(remove_parts)

        try:
            self.table.update_item(
                Key={PARTITION_KEY: submission_id},
                UpdateExpression=update_expression.strip(),
                ConditionExpression=(
                    f"attribute_exists(#pk) AND #status IN ({', '.join(allowed_placeholders)})"
                ),
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=values,
            )
        except ClientError as err:
            if _is_conditional_check_failed(err):
                return False
            raise StoreUnavailableError(
                f"could not update submission {submission_id}: {err}"
            ) from err
        except BotoCoreError as err:
            raise StoreUnavailableError(
                f"could not update submission {submission_id}: {err}"
            ) from err
        return True

    def get(self, submission_id: str) -> Optional[Submission]:
        try:
            # Strongly consistent, as stages read right after the previous stage wrote.
            response = self.table.get_item(
                Key={PARTITION_KEY: submission_id}, ConsistentRead=True
            )
        except (ClientError, BotoCoreError) as err:
            print(f"ERROR: DynamoDB get_item failed for {submission_id}: {err}")
            raise StoreUnavailableError(
                f"could not read submission {submission_id}: {err}"
            ) from err

        if "Item" not in response:
            print(f"DynamoDB: submission {submission_id} NOT found in {self.table.table_name}")
            return None
        return item_to_submission(response["Item"])


def create_submission_table_if_not_exists(dynamodb, table_name: str = DYNAMODB_TABLE_NAME):
    existing_tables = [t.name for t in dynamodb.tables.all()]
    print(f"DynamoDB: existing_tables: {existing_tables}")
    if table_name in existing_tables:
        return dynamodb.Table(table_name)

    print(f"DynamoDB: creating table {table_name}")
    table = dynamodb.create_table(
        TableName=table_name,
        KeySchema=[{"AttributeName": PARTITION_KEY, "KeyType": "HASH"}],
        AttributeDefinitions=[{"AttributeName": PARTITION_KEY, "AttributeType": "S"}],
        BillingMode="PAY_PER_REQUEST",
    )
    # Wait until the table exists.
    print(f"DynamoDB: waiting for table to be created {table_name}")
    table.meta.client.get_waiter("table_exists").wait(TableName=table_name)
    print(f"DynamoDB: table {table_name} status:", table.table_status)
    return table
