"""
Typed operations over the single DynamoDB metadata table.

Keys are (ownerId, recordId). There are no secondary indexes, so anything that
is not keyed by owner (sharing lookups) goes through a paginated scan.
"""

import logging
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from boto3.dynamodb.conditions import Attr, ConditionBase, Key
from botocore.exceptions import ClientError
from pydantic import ValidationError
from pydantic.alias_generators import to_camel

from storeit_api.aws_clients import get_dynamodb_table
from storeit_api.database.records import (
    Record,
    RecordType,
    UploadSession,
    UploadStatus,
    parse_record,
)
from storeit_api.errors import ConflictError, NotFoundError

logger = logging.getLogger(__name__)

CONDITIONAL_CHECK_FAILED = "ConditionalCheckFailedException"


def _is_conditional_failure(err: ClientError) -> bool:
    return err.response.get("Error", {}).get("Code") == CONDITIONAL_CHECK_FAILED


def _to_attribute_value(value: Any) -> Any:
    """Convert a Python value into something the DynamoDB serializer accepts."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return [_to_attribute_value(v) for v in value]
    if isinstance(value, dict):
        return {k: _to_attribute_value(v) for k, v in value.items()}
    return value


class MetadataTable:
    """Adapter for File Records, Upload Sessions and Reset Codes in one table"""

    def __init__(self, table=None, table_name: Optional[str] = None):
        self.table = table if table is not None else get_dynamodb_table(table_name)

    def _parse_items(self, items: List[Dict[str, Any]]) -> List[Record]:
        records = []
        for item in items:
            try:
                records.append(parse_record(item))
            except ValidationError as e:
                logger.warning(
                    f"Skipping unreadable item {item.get('ownerId')}/{item.get('recordId')}: {e.error_count()} errors",
                    extra={"event": "unreadable_item", "record_type": item.get("recordType")},
                )
        return records

    def get(self, owner_id: str, record_id: str) -> Optional[Record]:
        """Fetch one record by key, or None when absent."""
        response = self.table.get_item(Key={"ownerId": owner_id, "recordId": record_id})
        item = response.get("Item")
        if item is None:
            return None
        return parse_record(item)

    def put(self, record: Record) -> Record:
        """Write a record, replacing any item with the same key."""
        self.table.put_item(Item=record.to_item())
        logger.debug(f"Put {record.record_type} {record.owner_id}/{record.record_id}")
        return record

    def delete(self, owner_id: str, record_id: str) -> None:
        """Delete a record by key. Deleting an absent key is not an error."""
        self.table.delete_item(Key={"ownerId": owner_id, "recordId": record_id})

    def query_by_owner(
        self,
        owner_id: str,
        record_type: Optional[RecordType] = None,
    ) -> List[Record]:
        """All records in one owner's partition, following pagination to the end."""
        query_kwargs: Dict[str, Any] = {"KeyConditionExpression": Key("ownerId").eq(owner_id)}
        if record_type is not None:
            query_kwargs["FilterExpression"] = Attr("recordType").eq(RecordType(record_type).value)

        items: List[Dict[str, Any]] = []
        while True:
            response = self.table.query(**query_kwargs)
            items.extend(response.get("Items", []))
            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                break
            query_kwargs["ExclusiveStartKey"] = last_key
        return self._parse_items(items)

    def scan_all(
        self,
        predicate: Optional[Callable[[Record], bool]] = None,
        filter_expression: Optional[ConditionBase] = None,
    ) -> List[Record]:
        """
        Scan the whole table, following pagination to the end.

        `filter_expression` is pushed down to DynamoDB to cut transfer;
        `predicate` is applied to the parsed records and is authoritative.
        """
        scan_kwargs: Dict[str, Any] = {}
        if filter_expression is not None:
            scan_kwargs["FilterExpression"] = filter_expression

        items: List[Dict[str, Any]] = []
        pages = 0
        while True:
            response = self.table.scan(**scan_kwargs)
            pages += 1
            items.extend(response.get("Items", []))
            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                break
            scan_kwargs["ExclusiveStartKey"] = last_key

        records = self._parse_items(items)
        if predicate is not None:
            records = [record for record in records if predicate(record)]
        logger.debug(f"Scanned {pages} page(s), {len(records)} matching record(s)")
        return records

    def update(
        self,
        owner_id: str,
        record_id: str,
        field_deltas: Dict[str, Any],
        condition: Optional[ConditionBase] = None,
    ) -> Record:
        """
        Set the given fields on an existing record and return the updated record.

        Field names are the snake_case model names. The record must exist;
        a failed existence check or `condition` raises ConflictError.
        """
        if not field_deltas:
            record = self.get(owner_id, record_id)
            if record is None:
                raise NotFoundError(f"Record {record_id} not found")
            return record

        names: Dict[str, str] = {}
        values: Dict[str, Any] = {}
        assignments = []
        for i, (field_name, value) in enumerate(field_deltas.items()):
            names[f"#f{i}"] = to_camel(field_name)
            values[f":u{i}"] = _to_attribute_value(value)
            assignments.append(f"#f{i} = :u{i}")

        full_condition = Attr("ownerId").exists()
        if condition is not None:
            full_condition = full_condition & condition

        try:
            response = self.table.update_item(
                Key={"ownerId": owner_id, "recordId": record_id},
                UpdateExpression="SET " + ", ".join(assignments),
                ConditionExpression=full_condition,
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=values,
                ReturnValues="ALL_NEW",
            )
        except ClientError as err:
            if _is_conditional_failure(err):
                raise ConflictError(f"Conditional update of {record_id} failed") from err
            raise
        return parse_record(response["Attributes"])

    def set_chunk(self, owner_id: str, upload_id: str, chunk_index: int, blob_key: str) -> UploadSession:
        """
        Record one chunk on an initiated upload session.

        The count is incremented only when the index is new; a re-sent index just
        overwrites its map entry. Both paths require status `initiated`, so
        chunks arriving after finalize started are rejected with ConflictError.
        """
        key = {"ownerId": owner_id, "recordId": upload_id}
        names = {"#chunks": "chunks", "#idx": str(chunk_index), "#status": "status"}
        status_value = {":initiated": UploadStatus.INITIATED.value, ":key": blob_key}

        try:
            response = self.table.update_item(
                Key=key,
                UpdateExpression="SET #chunks.#idx = :key ADD #count :one",
                ConditionExpression="#status = :initiated AND attribute_not_exists(#chunks.#idx)",
                ExpressionAttributeNames={**names, "#count": "uploadedChunks"},
                ExpressionAttributeValues={**status_value, ":one": 1},
                ReturnValues="ALL_NEW",
            )
            return parse_record(response["Attributes"])
        except ClientError as err:
            if not _is_conditional_failure(err):
                raise

        # Index already present: overwrite without counting it twice
        try:
            response = self.table.update_item(
                Key=key,
                UpdateExpression="SET #chunks.#idx = :key",
                ConditionExpression="#status = :initiated AND attribute_exists(#chunks.#idx)",
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=status_value,
                ReturnValues="ALL_NEW",
            )
        except ClientError as err:
            if _is_conditional_failure(err):
                raise ConflictError("Upload session is no longer accepting chunks") from err
            raise
        logger.info(f"Chunk {chunk_index} of upload {upload_id} re-sent, count unchanged")
        return parse_record(response["Attributes"])

    def transition_status(
        self,
        owner_id: str,
        upload_id: str,
        expected: UploadStatus,
        new: UploadStatus,
    ) -> UploadSession:
        """Compare-and-swap the session status; losers get ConflictError."""
        try:
            return self.update(
                owner_id,
                upload_id,
                {"status": new},
                condition=Attr("status").eq(UploadStatus(expected).value),
            )
        except ConflictError as err:
            raise ConflictError(
                f"Upload {upload_id} is not {UploadStatus(expected).value}",
            ) from err
