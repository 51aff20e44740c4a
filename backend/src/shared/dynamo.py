"""
DynamoDB utility functions for paginated reads and batch operations.
"""
import boto3
from typing import List, Dict, Any, Optional
from botocore.exceptions import ClientError, BotoCoreError
from .config import config
from .errors import StoreFailure
from .logging import logger


# Cancellation reasons meaning another writer got to the item first
LOST_CONDITION_REASONS = ('ConditionalCheckFailed', 'TransactionConflict')

# Initialize AWS resources lazily
_dynamodb = None


def get_dynamodb():
    """Get or create the DynamoDB service resource."""
    global _dynamodb
    if _dynamodb is None:
        _dynamodb = boto3.resource('dynamodb', region_name=config.AWS_REGION)
    return _dynamodb


def get_table(table_name: str):
    """Return a Table resource for the given name."""
    return get_dynamodb().Table(table_name)


def _store_failure(action: str, table_name: str, error: Exception) -> StoreFailure:
    logger.error(f"Error {action} {table_name}: {error}")
    return StoreFailure(str(error), cause=error)


def scan_all(
    table,
    filter_expression: Optional[Any] = None,
    projection: Optional[str] = None,
    expression_names: Optional[Dict[str, str]] = None
) -> List[Dict[str, Any]]:
    """
    Scan a whole table, following LastEvaluatedKey pagination.

    Args:
        table: DynamoDB Table resource
        filter_expression: Optional filter expression
        projection: Optional projection expression
        expression_names: Attribute name placeholders used by the projection

    Returns:
        Every item matching the filter

    Raises:
        StoreFailure: if any page fails
    """
    params = {}
    if filter_expression is not None:
        params['FilterExpression'] = filter_expression
    if projection:
        params['ProjectionExpression'] = projection
    if expression_names:
        params['ExpressionAttributeNames'] = expression_names

    items = []
    try:
        while True:
            response = table.scan(**params)
            items.extend(response.get('Items', []))
            last_key = response.get('LastEvaluatedKey')
            if not last_key:
                break
            params['ExclusiveStartKey'] = last_key
    except (ClientError, BotoCoreError) as e:
        raise _store_failure('scanning', table.name, e)

    return items


def query_all(
    table,
    key_condition: Any,
    index_name: Optional[str] = None,
    filter_expression: Optional[Any] = None,
    scan_forward: bool = True
) -> List[Dict[str, Any]]:
    """
    Query a table or index, following pagination.

    Args:
        table: DynamoDB Table resource
        key_condition: Key condition expression
        index_name: Optional GSI name
        filter_expression: Optional filter expression
        scan_forward: True for ascending, False for descending

    Returns:
        List of items matching the query
    """
    params = {
        'KeyConditionExpression': key_condition,
        'ScanIndexForward': scan_forward
    }
    if index_name:
        params['IndexName'] = index_name
    if filter_expression is not None:
        params['FilterExpression'] = filter_expression

    items = []
    try:
        while True:
            response = table.query(**params)
            items.extend(response.get('Items', []))
            last_key = response.get('LastEvaluatedKey')
            if not last_key:
                break
            params['ExclusiveStartKey'] = last_key
    except (ClientError, BotoCoreError) as e:
        raise _store_failure('querying', table.name, e)

    return items


def batch_write_items(table, items: List[Dict[str, Any]]) -> int:
    """
    Write multiple items using the table's batch writer.
    Batching (max 25 items per request) and unprocessed retries are handled by boto3.

    Returns:
        Number of items written
    """
    if not items:
        return 0
    try:
        with table.batch_writer() as batch:
            for item in items:
                batch.put_item(Item=item)
    except (ClientError, BotoCoreError) as e:
        raise _store_failure('batch writing to', table.name, e)

    logger.info(f"Successfully wrote {len(items)} items to {table.name}")
    return len(items)


def batch_delete_items(table, keys: List[Dict[str, Any]]) -> int:
    """
    Delete multiple items by primary key.

    Returns:
        Number of delete requests issued
    """
    if not keys:
        return 0
    try:
        with table.batch_writer() as batch:
            for key in keys:
                batch.delete_item(Key=key)
    except (ClientError, BotoCoreError) as e:
        raise _store_failure('batch deleting from', table.name, e)

    logger.info(f"Deleted {len(keys)} items from {table.name}")
    return len(keys)


def is_condition_failure(error: ClientError) -> bool:
    """True when a write lost its ConditionExpression (plain or transactional)."""
    code = error.response.get('Error', {}).get('Code')
    if code in ('ConditionalCheckFailedException', 'TransactionConflictException'):
        return True
    if code == 'TransactionCanceledException':
        reasons = error.response.get('CancellationReasons') or []
        # Cancellations without reasons count as a lost condition
        return not reasons or any(
            reason.get('Code') in LOST_CONDITION_REASONS for reason in reasons
        )
    return False
