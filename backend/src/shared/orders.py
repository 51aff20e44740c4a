"""
DynamoDB access for orders, assignments, profiles and admin settings.

Every method raises StoreFailure on a store error and OrderUnavailable when a
conditional transition loses.
"""
from typing import Any, Dict, Iterable, List, Optional, Tuple

from boto3.dynamodb.conditions import Attr, Key
from boto3.dynamodb.types import TypeSerializer
from botocore.exceptions import BotoCoreError, ClientError

from .config import Config, config as default_config
from .dynamo import (
    batch_delete_items,
    batch_write_items,
    get_dynamodb,
    get_table,
    is_condition_failure,
    query_all,
    scan_all,
)
from .errors import OrderUnavailable, StoreFailure
from .logging import logger
from .models import OrderSource

STATUS_INDEX = 'StatusIndex'
SETTINGS_KEY = {'settingsId': 'default'}

_serializer = TypeSerializer()


def build_update_expression(
    set_fields: Dict[str, Any],
    remove_fields: Iterable[str] = ()
) -> Tuple[str, Dict[str, str], Dict[str, Any]]:
    """
    Build an UpdateExpression with placeholders for every attribute.

    Returns:
        (expression, attribute names, attribute values)
    """
    names = {}
    values = {}
    set_parts = []
    for i, (attr, value) in enumerate(set_fields.items()):
        names[f'#s{i}'] = attr
        values[f':s{i}'] = value
        set_parts.append(f'#s{i} = :s{i}')

    remove_parts = []
    for i, attr in enumerate(remove_fields):
        names[f'#r{i}'] = attr
        remove_parts.append(f'#r{i}')

    clauses = []
    if set_parts:
        clauses.append('SET ' + ', '.join(set_parts))
    if remove_parts:
        clauses.append('REMOVE ' + ', '.join(remove_parts))
    return ' '.join(clauses), names, values


class OrderStore:
    """Order persistence over DynamoDB tables."""

    def __init__(
        self,
        cfg: Optional[Config] = None,
        orders_table=None,
        assignments_table=None,
        profiles_table=None,
        settings_table=None,
        client=None
    ):
        self.config = cfg or default_config
        self._orders_table = orders_table
        self._assignments_table = assignments_table
        self._profiles_table = profiles_table
        self._settings_table = settings_table
        self._client = client

    @property
    def orders_table(self):
        if self._orders_table is None:
            self._orders_table = get_table(self.config.ORDERS_TABLE)
        return self._orders_table

    @property
    def assignments_table(self):
        if self._assignments_table is None:
            self._assignments_table = get_table(self.config.ASSIGNMENTS_TABLE)
        return self._assignments_table

    @property
    def profiles_table(self):
        if self._profiles_table is None and self.config.PROFILES_TABLE:
            self._profiles_table = get_table(self.config.PROFILES_TABLE)
        return self._profiles_table

    @property
    def settings_table(self):
        if self._settings_table is None and self.config.SETTINGS_TABLE:
            self._settings_table = get_table(self.config.SETTINGS_TABLE)
        return self._settings_table

    @property
    def client(self):
        if self._client is None:
            self._client = get_dynamodb().meta.client
        return self._client

    # ------------------------------------------------------------------
    # Sheet sync
    # ------------------------------------------------------------------

    def load_sheet_index(self) -> Dict[str, List[Dict[str, Any]]]:
        """
        Map every persisted sheetRowId to the orders carrying it.

        Concurrent syncs can insert the same identity twice, so each
        identity maps to a list.
        """
        items = scan_all(
            self.orders_table,
            projection='orderId, sheetRowId, #status, takenBy, #source',
            expression_names={'#status': 'status', '#source': 'source'}
        )
        index = {}
        for item in items:
            sheet_row_id = item.get('sheetRowId')
            if not sheet_row_id:
                continue
            index.setdefault(sheet_row_id, []).append({
                'orderId': item.get('orderId'),
                'status': item.get('status'),
                'takenBy': item.get('takenBy'),
                'source': item.get('source'),
            })
        return index

    def insert_orders(self, items: List[Dict[str, Any]]) -> int:
        return batch_write_items(self.orders_table, items)

    def update_order(self, order_id: str, fields: Dict[str, Any]) -> bool:
        """
        Overwrite the given attributes of an existing order.

        Returns:
            False when the order no longer exists
        """
        expression, names, values = build_update_expression(fields)
        try:
            self.orders_table.update_item(
                Key={'orderId': order_id},
                UpdateExpression=expression,
                ConditionExpression='attribute_exists(orderId)',
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=values
            )
        except ClientError as e:
            if is_condition_failure(e):
                logger.warning(f"Order {order_id} vanished before update")
                return False
            raise StoreFailure(str(e), cause=e)
        except BotoCoreError as e:
            raise StoreFailure(str(e), cause=e)
        return True

    def delete_non_sheet_orders(self) -> int:
        """Delete every order whose source is not the sheet. Returns the count."""
        items = scan_all(
            self.orders_table,
            filter_expression=(
                Attr('source').ne(OrderSource.GOOGLE_SHEET) | Attr('source').not_exists()
            ),
            projection='orderId'
        )
        return batch_delete_items(self.orders_table, [{'orderId': i['orderId']} for i in items])

    def delete_orders(self, order_ids: List[str]) -> int:
        return batch_delete_items(self.orders_table, [{'orderId': oid} for oid in order_ids])

    # ------------------------------------------------------------------
    # Editor workflow
    # ------------------------------------------------------------------

    def transition(
        self,
        order_id: str,
        set_fields: Dict[str, Any],
        expected_status: str,
        remove_fields: Iterable[str] = (),
        expected_taken_by: Optional[str] = None,
        assignment: Optional[Dict[str, Any]] = None
    ) -> None:
        """
        Conditionally move an order to a new state.

        The update applies only if the order's status (and assignee, when given)
        still match. With an assignment record, the update and the audit write
        go through one transaction.

        Raises:
            OrderUnavailable: the condition no longer holds
            StoreFailure: any other store error
        """
        expression, names, values = build_update_expression(set_fields, remove_fields)
        names['#cur_status'] = 'status'
        values[':expected_status'] = expected_status
        condition = '#cur_status = :expected_status'
        if expected_taken_by is not None:
            names['#cur_taken_by'] = 'takenBy'
            values[':expected_taken_by'] = expected_taken_by
            condition += ' AND #cur_taken_by = :expected_taken_by'

        try:
            if assignment is None:
                self.orders_table.update_item(
                    Key={'orderId': order_id},
                    UpdateExpression=expression,
                    ConditionExpression=condition,
                    ExpressionAttributeNames=names,
                    ExpressionAttributeValues=values
                )
            else:
                self.client.transact_write_items(
                    TransactItems=[
                        {
                            'Update': {
                                'TableName': self.config.ORDERS_TABLE,
                                'Key': {'orderId': _serializer.serialize(order_id)},
                                'UpdateExpression': expression,
                                'ConditionExpression': condition,
                                'ExpressionAttributeNames': names,
                                'ExpressionAttributeValues': {
                                    k: _serializer.serialize(v) for k, v in values.items()
                                }
                            }
                        },
                        {
                            'Put': {
                                'TableName': self.config.ASSIGNMENTS_TABLE,
                                'Item': {
                                    k: _serializer.serialize(v) for k, v in assignment.items()
                                },
                                'ConditionExpression': 'attribute_not_exists(assignmentId)'
                            }
                        }
                    ]
                )
        except ClientError as e:
            if is_condition_failure(e):
                raise OrderUnavailable(order_id)
            logger.error(f"Error updating order {order_id}: {e}")
            raise StoreFailure(str(e), cause=e)
        except BotoCoreError as e:
            raise StoreFailure(str(e), cause=e)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_order(self, order_id: str) -> Optional[Dict[str, Any]]:
        try:
            response = self.orders_table.get_item(Key={'orderId': order_id})
        except (ClientError, BotoCoreError) as e:
            raise StoreFailure(str(e), cause=e)
        return response.get('Item')

    def list_orders(self, status: Optional[str] = None, taken_by: Optional[str] = None) -> List[Dict[str, Any]]:
        """Orders filtered by status (via the status index) and/or assignee."""
        taken_filter = Attr('takenBy').eq(taken_by) if taken_by else None
        if status:
            return query_all(
                self.orders_table,
                key_condition=Key('status').eq(status),
                index_name=STATUS_INDEX,
                filter_expression=taken_filter
            )
        return scan_all(self.orders_table, filter_expression=taken_filter)

    def list_profiles(self, role: Optional[str] = None) -> List[Dict[str, Any]]:
        if self.profiles_table is None:
            return []
        role_filter = Attr('role').eq(role) if role else None
        return scan_all(self.profiles_table, filter_expression=role_filter)

    def revenue_threshold(self) -> float:
        """Admin revenue goal, falling back to the configured default."""
        default = self.config.REVENUE_THRESHOLD_DEFAULT
        if self.settings_table is None:
            return default
        try:
            item = self.settings_table.get_item(Key=SETTINGS_KEY).get('Item') or {}
        except (ClientError, BotoCoreError) as e:
            raise StoreFailure(str(e), cause=e)
        threshold = item.get('revenueThreshold')
        if not threshold:
            return default
        return float(threshold)
