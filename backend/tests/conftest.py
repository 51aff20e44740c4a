"""
Shared fixtures: sample feeds and an in-memory order store.
"""
import copy
import json
import os
import sys
from datetime import datetime, timezone

import pytest

# Add src to path for import
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

os.environ.setdefault('AWS_REGION', 'us-east-1')
os.environ.setdefault('AWS_DEFAULT_REGION', 'us-east-1')
os.environ.setdefault('ORDERS_TABLE', 'orders-test')
os.environ.setdefault('ASSIGNMENTS_TABLE', 'assignments-test')

from shared.errors import OrderUnavailable  # noqa: E402
from shared.models import OrderSource  # noqa: E402


FIXED_NOW = datetime(2025, 10, 20, 9, 30, tzinfo=timezone.utc)

SERVICE_Q = 'What type of service you want ?'
DESCRIPTION_Q = 'Could you briefly describe your project or needs?'
BUDGET_Q = 'What is your estimated budget for this project?'
TIMELINE_Q = 'What is your preferred timeline for project completion?'
NAME_Q = 'What is your full name?'

GVIZ_COLUMNS = [
    'Timestamp', SERVICE_Q, DESCRIPTION_Q, BUDGET_Q, TIMELINE_Q, NAME_Q,
    'Email', 'Phone', 'WhatsApp',
]


def gviz_row(timestamp, service, description, budget, timeline, name, email=None):
    values = [timestamp, service, description, budget, timeline, name, email, None, None]
    return {'c': [None if v is None else {'v': v} for v in values]}


def gviz_payload(rows, columns=None):
    """Wrap rows the way the Google Visualization endpoint does."""
    table = {
        'cols': [{'id': chr(65 + i), 'label': label, 'type': 'string'}
                 for i, label in enumerate(columns or GVIZ_COLUMNS)],
        'rows': rows,
    }
    body = json.dumps({'version': '0.6', 'status': 'ok', 'table': table})
    return ('/*O_o*/\ngoogle.visualization.Query.setResponse(' + body + ');').encode('utf-8')


class InMemoryOrderStore:
    """Order store double with the same conditional semantics as DynamoDB."""

    def __init__(self, orders=None, profiles=None, threshold=30000.0):
        self.orders = {o['orderId']: dict(o) for o in (orders or [])}
        self.assignments = []
        self.profiles = list(profiles or [])
        self.threshold = threshold
        self.delete_batches = []
        self.update_calls = 0

    def load_sheet_index(self):
        index = {}
        for order in self.orders.values():
            if order.get('sheetRowId'):
                index.setdefault(order['sheetRowId'], []).append({
                    'orderId': order['orderId'],
                    'status': order.get('status'),
                    'takenBy': order.get('takenBy'),
                    'source': order.get('source'),
                })
        return index

    def insert_orders(self, items):
        for item in items:
            self.orders[item['orderId']] = copy.deepcopy(item)
        return len(items)

    def update_order(self, order_id, fields):
        self.update_calls += 1
        if order_id not in self.orders:
            return False
        self.orders[order_id].update(copy.deepcopy(fields))
        return True

    def delete_non_sheet_orders(self):
        doomed = [oid for oid, o in self.orders.items()
                  if o.get('source') != OrderSource.GOOGLE_SHEET]
        for oid in doomed:
            del self.orders[oid]
        return len(doomed)

    def delete_orders(self, order_ids):
        self.delete_batches.append(list(order_ids))
        count = 0
        for oid in order_ids:
            if self.orders.pop(oid, None) is not None:
                count += 1
        return count

    def transition(self, order_id, set_fields, expected_status, remove_fields=(),
                   expected_taken_by=None, assignment=None):
        order = self.orders.get(order_id)
        if order is None or order.get('status') != expected_status:
            raise OrderUnavailable(order_id)
        if expected_taken_by is not None and order.get('takenBy') != expected_taken_by:
            raise OrderUnavailable(order_id)
        order.update(set_fields)
        for attr in remove_fields:
            order.pop(attr, None)
        if assignment is not None:
            self.assignments.append(dict(assignment))

    def get_order(self, order_id):
        return self.orders.get(order_id)

    def list_orders(self, status=None, taken_by=None):
        return [
            dict(o) for o in self.orders.values()
            if (status is None or o.get('status') == status)
            and (taken_by is None or o.get('takenBy') == taken_by)
        ]

    def list_profiles(self, role=None):
        return [p for p in self.profiles if role is None or p.get('role') == role]

    def revenue_threshold(self):
        return self.threshold


@pytest.fixture
def store():
    return InMemoryOrderStore()


@pytest.fixture
def now():
    return FIXED_NOW


def api_event(method='POST', sub='editor-1', groups='editor', order_id=None, body=None, query=None):
    """Build an API Gateway proxy event with Cognito claims."""
    event = {
        'httpMethod': method,
        'requestContext': {'authorizer': {'claims': {}}},
        'pathParameters': {'orderId': order_id} if order_id else None,
        'queryStringParameters': query,
        'body': json.dumps(body) if body is not None else None,
    }
    if sub:
        event['requestContext']['authorizer']['claims'] = {'sub': sub, 'cognito:groups': groups}
    return event
