import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import uuid4

import boto3
from boto3.dynamodb.conditions import Key
from botocore.exceptions import ClientError

from app.core.config import Settings
from app.models.earning import Earning, EarningFields

logger = logging.getLogger(__name__)


def connect(config: Settings):
    """Create the DynamoDB resource used by both stores."""
    return boto3.resource(
        "dynamodb",
        region_name=config.DYNAMO_REGION,
        endpoint_url=config.DYNAMO_ENDPOINT_URL,
    )


def _error_message(e: ClientError) -> str:
    return e.response.get("Error", {}).get("Message", str(e))


class UserStore:
    """Users table, keyed by user_id with an email-index GSI."""

    def __init__(self, table):
        self.table = table

    def get_user_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        try:
            response = self.table.query(
                IndexName="email-index",
                KeyConditionExpression=Key("email").eq(email),
            )
            return _from_dynamo(response["Items"][0]) if response["Items"] else None
        except ClientError as e:
            logger.error(f"get_user_by_email failed: {_error_message(e)}")
            return None

    def get_user_by_id(self, user_id: str) -> Optional[Dict[str, Any]]:
        try:
            response = self.table.get_item(Key={"user_id": user_id})
            item = response.get("Item")
            return _from_dynamo(item) if item else None
        except ClientError as e:
            logger.error(f"get_user_by_id failed: {_error_message(e)}")
            return None

    def put_user(self, user_item: dict) -> bool:
        try:
            self.table.put_item(Item=_convert_for_dynamo(user_item))
            return True
        except ClientError as e:
            logger.error(f"put_user failed: {_error_message(e)}")
            return False


class EarningsStore:
    """
    Earnings table: partition key user_id, sort key earning_id.

    Every key includes the owner, so one user can never read or write
    another user's records.
    """

    def __init__(self, table):
        self.table = table

    def insert_earning(self, user_id: str, fields: EarningFields) -> Optional[Earning]:
        """Insert with a store-generated id. Returns the stored record or None."""
        earning = Earning(
            earning_id=uuid4().hex,
            user_id=user_id,
            amount=fields.amount,
            currency=fields.currency,
            task=fields.task,
            date=fields.date,
        )
        try:
            self.table.put_item(
                Item=_convert_for_dynamo(earning.to_item()),
                ConditionExpression="attribute_not_exists(earning_id)",
            )
            return earning
        except ClientError as e:
            logger.error(f"insert_earning failed: {_error_message(e)}")
            return None

    def list_earnings(self, user_id: str) -> Optional[List[Earning]]:
        """
        Enumerate every record owned by user_id, following LastEvaluatedKey.
        Returns None when the query fails.
        """
        items: List[Dict[str, Any]] = []
        query_kwargs: Dict[str, Any] = {"KeyConditionExpression": Key("user_id").eq(user_id)}
        try:
            while True:
                response = self.table.query(**query_kwargs)
                items.extend(response.get("Items", []))
                last_key = response.get("LastEvaluatedKey")
                if not last_key:
                    break
                query_kwargs["ExclusiveStartKey"] = last_key
        except ClientError as e:
            logger.error(f"list_earnings failed: {_error_message(e)}")
            return None

        earnings = []
        for item in items:
            try:
                earnings.append(Earning.from_item(item))
            except (KeyError, ValueError) as e:
                logger.error(f"Skipping malformed earning {item.get('earning_id')}: {e}")
        return earnings

    def update_earning(self, user_id: str, earning_id: str, fields: EarningFields) -> bool:
        """Overwrite amount, currency, task and date of an existing record."""
        updates = {
            "amount": fields.amount,
            "currency": fields.currency.value,
            "task": fields.task,
            "date": fields.date.isoformat(),
        }

        update_expression_parts = []
        expression_attribute_values = {}
        expression_attribute_names = {}

        for idx, (key, value) in enumerate(updates.items()):
            placeholder = f"#f{idx}"
            value_placeholder = f":v{idx}"
            update_expression_parts.append(f"{placeholder} = {value_placeholder}")
            expression_attribute_names[placeholder] = key
            expression_attribute_values[value_placeholder] = value

        try:
            self.table.update_item(
                Key={"user_id": user_id, "earning_id": earning_id},
                UpdateExpression="SET " + ", ".join(update_expression_parts),
                ConditionExpression="attribute_exists(earning_id)",
                ExpressionAttributeNames=expression_attribute_names,
                ExpressionAttributeValues=_convert_for_dynamo(expression_attribute_values),
            )
            return True
        except ClientError as e:
            logger.error(f"update_earning failed: {_error_message(e)}")
            return False

    def delete_earning(self, user_id: str, earning_id: str) -> bool:
        """
        Delete a record by id. Deleting an id that does not exist succeeds,
        so repeated deletes are harmless.
        """
        try:
            self.table.delete_item(Key={"user_id": user_id, "earning_id": earning_id})
            return True
        except ClientError as e:
            logger.error(f"delete_earning failed: {_error_message(e)}")
            return False


def _convert_for_dynamo(obj: Any):
    """
    Recursively convert floats to Decimal for DynamoDB compatibility.
    """
    if isinstance(obj, float):
        return Decimal(str(obj))
    if isinstance(obj, dict):
        return {k: _convert_for_dynamo(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_convert_for_dynamo(v) for v in obj]
    return obj


def _from_dynamo(obj: Any):
    """
    Recursively convert Decimal instances back to native Python numeric types.
    """
    if isinstance(obj, list):
        return [_from_dynamo(item) for item in obj]
    if isinstance(obj, dict):
        return {k: _from_dynamo(v) for k, v in obj.items()}
    if isinstance(obj, Decimal):
        if obj % 1 == 0:
            return int(obj)
        return float(obj)
    return obj
