# leaselock/infrastructure/dynamodb/client.py

import asyncio
from decimal import Decimal
from typing import Any, Dict, Optional

import boto3
from boto3.dynamodb.types import TypeDeserializer, TypeSerializer
from botocore.exceptions import ClientError

CONDITIONAL_CHECK_FAILED = "ConditionalCheckFailedException"


def is_conditional_check_failed(error: ClientError) -> bool:
    """True when DynamoDB rejected a write because its ConditionExpression did not hold."""
    return error.response.get("Error", {}).get("Code") == CONDITIONAL_CHECK_FAILED


def _to_dynamo(value: Any) -> Any:
    # boto3 refuses Python floats; DynamoDB numbers travel as Decimal.
    if isinstance(value, bool):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, dict):
        return {k: _to_dynamo(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_dynamo(v) for v in value]
    return value


def _from_dynamo(value: Any) -> Any:
    if isinstance(value, Decimal):
        # "1.0" keeps its float type; only numbers written without a fraction become int.
        return int(value) if value.as_tuple().exponent >= 0 else float(value)
    if isinstance(value, dict):
        return {k: _from_dynamo(v) for k, v in value.items()}
    if isinstance(value, (list, set)):
        return [_from_dynamo(v) for v in value]
    return value


class DynamoDBClient:
    """
    Async facade over the boto3 low-level DynamoDB client for one table. boto3 is blocking,
    so every call runs in a worker thread. ClientError propagates unchanged; callers decide
    which error codes mean contention.
    """

    def __init__(
        self,
        table_name: str,
        region_name: str = "ap-southeast-2",
        endpoint_url: Optional[str] = None,
        aws_access_key_id: Optional[str] = None,
        aws_secret_access_key: Optional[str] = None,
        aws_session_token: Optional[str] = None,
        client: Any = None,
    ) -> None:
        self.table_name = table_name
        self.client = client or boto3.client(
            "dynamodb",
            region_name=region_name,
            endpoint_url=endpoint_url,
            aws_access_key_id=aws_access_key_id,
            aws_secret_access_key=aws_secret_access_key,
            aws_session_token=aws_session_token,
        )
        self._serializer = TypeSerializer()
        self._deserializer = TypeDeserializer()

    @classmethod
    def from_settings(cls, settings: Any) -> "DynamoDBClient":
        return cls(
            table_name=settings.dynamodb_table_name,
            region_name=settings.aws_region,
            endpoint_url=settings.dynamodb_endpoint_url,
            aws_access_key_id=settings.aws_access_key_id,
            aws_secret_access_key=settings.aws_secret_access_key,
            aws_session_token=settings.aws_session_token,
        )

    def marshall(self, item: Dict[str, Any]) -> Dict[str, Any]:
        return {k: self._serializer.serialize(_to_dynamo(v)) for k, v in item.items()}

    def unmarshall(self, item: Dict[str, Any]) -> Dict[str, Any]:
        return {k: _from_dynamo(self._deserializer.deserialize(v)) for k, v in item.items()}

    def _params(
        self,
        condition_expression: Optional[str],
        names: Optional[Dict[str, str]],
        values: Optional[Dict[str, Any]],
    ) -> Dict[str, Any]:
        params: Dict[str, Any] = {"TableName": self.table_name}
        if condition_expression:
            params["ConditionExpression"] = condition_expression
        if names:
            params["ExpressionAttributeNames"] = names
        if values:
            params["ExpressionAttributeValues"] = self.marshall(values)
        return params

    async def put_item(
        self,
        item: Dict[str, Any],
        condition_expression: Optional[str] = None,
        names: Optional[Dict[str, str]] = None,
        values: Optional[Dict[str, Any]] = None,
    ) -> None:
        params = self._params(condition_expression, names, values)
        params["Item"] = self.marshall(item)
        await asyncio.to_thread(self.client.put_item, **params)

    async def get_item(self, key: Dict[str, Any], consistent_read: bool = True) -> Optional[Dict[str, Any]]:
        """Return the unmarshalled item, or None if it does not exist."""
        params = self._params(None, None, None)
        params["Key"] = self.marshall(key)
        params["ConsistentRead"] = consistent_read
        response = await asyncio.to_thread(self.client.get_item, **params)
        item = response.get("Item")
        if not item:
            return None
        return self.unmarshall(item)

    async def delete_item(
        self,
        key: Dict[str, Any],
        condition_expression: Optional[str] = None,
        names: Optional[Dict[str, str]] = None,
        values: Optional[Dict[str, Any]] = None,
    ) -> None:
        params = self._params(condition_expression, names, values)
        params["Key"] = self.marshall(key)
        await asyncio.to_thread(self.client.delete_item, **params)

    async def update_item(
        self,
        key: Dict[str, Any],
        update_expression: str,
        condition_expression: Optional[str] = None,
        names: Optional[Dict[str, str]] = None,
        values: Optional[Dict[str, Any]] = None,
    ) -> None:
        params = self._params(condition_expression, names, values)
        params["Key"] = self.marshall(key)
        params["UpdateExpression"] = update_expression
        await asyncio.to_thread(self.client.update_item, **params)
