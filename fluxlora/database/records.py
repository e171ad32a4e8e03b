"""
Record store gateway over DynamoDB tables keyed by `id`
"""
import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional
from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import ClientError
from fluxlora.exceptions import RecordExistsError, RecordNotFoundError

logger = logging.getLogger(__name__)

# Fields that are assigned once and never rewritten by an update
IMMUTABLE_FIELDS = frozenset({"id", "userId", "createdAt", "updatedAt"})


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def to_dynamo(value: Any) -> Any:
    """DynamoDB rejects floats: store them as Decimal"""
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, dict):
        return {k: to_dynamo(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_dynamo(v) for v in value]
    return value


def from_dynamo(value: Any) -> Any:
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, dict):
        return {k: from_dynamo(v) for k, v in value.items()}
    if isinstance(value, list):
        return [from_dynamo(v) for v in value]
    if isinstance(value, set):
        return [from_dynamo(v) for v in value]
    return value


def _is_conditional_failure(error: ClientError) -> bool:
    return error.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException"


@dataclass
class Page:
    items: List[dict]
    pagination: Dict[str, Any]


class RecordStore:
    """
    Generic CRUD over document tables.
    Timestamps are always assigned here; client supplied values are ignored.
    """

    def __init__(self, resource, max_page_limit: int = 100):
        self.resource = resource
        self.max_page_limit = max_page_limit

    def _table(self, table: str):
        return self.resource.Table(table)

    def get(self, table: str, record_id: str) -> Optional[dict]:
        try:
            response = self._table(table).get_item(Key={"id": record_id})
        except ClientError as e:
            logger.error(f"Error getting item from {table}: {e}")
            raise
        item = response.get("Item")
        return from_dynamo(item) if item else None

    def create(self, table: str, record: dict) -> dict:
        """Insert a new record; fails if the id is already taken"""
        now = utc_now_iso()
        item = {k: v for k, v in record.items() if k not in ("createdAt", "updatedAt") and v is not None}
        item["createdAt"] = now
        item["updatedAt"] = now
        try:
            self._table(table).put_item(
                Item=to_dynamo(item),
                ConditionExpression="attribute_not_exists(id)"
            )
        except ClientError as e:
            if _is_conditional_failure(e):
                raise RecordExistsError(table, record.get("id"))
            logger.error(f"Error creating item in {table}: {e}")
            raise
        return item

    def update(self, table: str, record_id: str, fields: dict) -> dict:
        """Set the given fields, stamp updatedAt and return the full new record"""
        names: Dict[str, str] = {}
        values: Dict[str, Any] = {}
        assignments = []
        removals = []
        for index, (field, value) in enumerate(fields.items()):
            if field in IMMUTABLE_FIELDS:
                continue
            names[f"#f{index}"] = field
            if value is None:
                removals.append(f"#f{index}")
            else:
                assignments.append(f"#f{index} = :v{index}")
                values[f":v{index}"] = to_dynamo(value)
        names["#updatedAt"] = "updatedAt"
        values[":updatedAt"] = utc_now_iso()
        assignments.append("#updatedAt = :updatedAt")

        expression = "SET " + ", ".join(assignments)
        if removals:
            expression += " REMOVE " + ", ".join(removals)
        try:
            response = self._table(table).update_item(
                Key={"id": record_id},
                UpdateExpression=expression,
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=values,
                ConditionExpression="attribute_exists(id)",
                ReturnValues="ALL_NEW"
            )
        except ClientError as e:
            if _is_conditional_failure(e):
                raise RecordNotFoundError(table, record_id)
            logger.error(f"Error updating item in {table}: {e}")
            raise
        return from_dynamo(response["Attributes"])

    def increment(self, table: str, record_id: str, field: str, delta: int = 1) -> dict:
        """Atomically add delta to a numeric field"""
        try:
            response = self._table(table).update_item(
                Key={"id": record_id},
                UpdateExpression="ADD #field :delta SET #updatedAt = :updatedAt",
                ExpressionAttributeNames={"#field": field, "#updatedAt": "updatedAt"},
                ExpressionAttributeValues={":delta": delta, ":updatedAt": utc_now_iso()},
                ConditionExpression="attribute_exists(id)",
                ReturnValues="ALL_NEW"
            )
        except ClientError as e:
            if _is_conditional_failure(e):
                raise RecordNotFoundError(table, record_id)
            logger.error(f"Error incrementing {field} in {table}: {e}")
            raise
        return from_dynamo(response["Attributes"])

    def delete(self, table: str, record_id: str):
        try:
            self._table(table).delete_item(
                Key={"id": record_id},
                ConditionExpression="attribute_exists(id)"
            )
        except ClientError as e:
            if _is_conditional_failure(e):
                raise RecordNotFoundError(table, record_id)
            logger.error(f"Error deleting item from {table}: {e}")
            raise

    def query_by_index(self, table: str, index_name: str, field: str, value: Any) -> List[dict]:
        """Secondary index equality lookup, following every result page"""
        params = {
            "IndexName": index_name,
            "KeyConditionExpression": Key(field).eq(value),
        }
        return self._collect(table, "query", params)

    def scan_with_filter(self, table: str, condition) -> List[dict]:
        """
        Full table scan with a boto3 condition (e.g. Attr("email").eq(x)).
        O(n) in the table size: only for lookups that have no index.
        """
        return self._collect(table, "scan", {"FilterExpression": condition})

    def list_paged(
        self,
        table: str,
        page: int = 1,
        limit: int = 20,
        sort_field: str = "createdAt",
        sort_order: str = "desc",
        filters: Optional[Dict[str, Any]] = None,
    ) -> Page:
        """Scan, filter, sort in memory, then slice. Only suitable for small tables."""
        page = max(page, 1)
        limit = max(1, min(limit, self.max_page_limit))
        params = {}
        condition = None
        for field, value in (filters or {}).items():
            if value is None:
                continue
            clause = Attr(field).eq(to_dynamo(value))
            condition = clause if condition is None else condition & clause
        if condition is not None:
            params["FilterExpression"] = condition
        items = self._collect(table, "scan", params)

        present = [item for item in items if item.get(sort_field) is not None]
        missing = [item for item in items if item.get(sort_field) is None]
        present.sort(key=lambda item: item[sort_field], reverse=(sort_order == "desc"))
        ordered = present + missing

        total = len(ordered)
        total_pages = math.ceil(total / limit) if total else 0
        start = (page - 1) * limit
        return Page(
            items=ordered[start:start + limit],
            pagination={
                "page": page,
                "limit": limit,
                "total": total,
                "totalPages": total_pages,
                "hasNext": page < total_pages,
                "hasPrev": page > 1,
            }
        )

    def _collect(self, table: str, operation: str, params: dict) -> List[dict]:
        items: List[dict] = []
        call = getattr(self._table(table), operation)
        try:
            while True:
                response = call(**params)
                items.extend(from_dynamo(item) for item in response.get("Items", []))
                last_key = response.get("LastEvaluatedKey")
                if not last_key:
                    break
                params = {**params, "ExclusiveStartKey": last_key}
        except ClientError as e:
            logger.error(f"Error running {operation} on {table}: {e}")
            raise
        return items
