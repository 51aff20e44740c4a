"""
Tests for the reconciliation engine and the end-to-end sync job.
"""
import json
from datetime import timedelta

import pytest

from conftest import FIXED_NOW, InMemoryOrderStore, gviz_payload, gviz_row


def sheet_row(timestamp='ts-1', service='Logo', description='Minimal logo',
              budget='5k', timeline='week', name='Ravi'):
    from shared.normalizer import SheetRow
    return SheetRow(
        full_name=name,
        service=service,
        description=description,
        budget_text=budget,
        timeline_text=timeline,
        timestamp=timestamp,
        raw={'Timestamp': timestamp, 'Service': service},
    )


def persisted(order_id, sheet_row_id, source='google_sheet', **fields):
    order = {
        'orderId': order_id,
        'sheetRowId': sheet_row_id,
        'source': source,
        'status': 'available',
        'clientName': 'Old name',
        'requirementText': 'Old text',
        'price': 1,
    }
    order.update(fields)
    return order


class TestBuildRecord:
    """Tests for build_record."""

    def test_descriptive_fields(self):
        from shared.reconcile import build_record

        record = build_record(sheet_row(budget='₹15,000 - 20k', timeline='urgent'), now=FIXED_NOW)

        assert record['sheetRowId'] == 'ts-1'
        assert record['clientName'] == 'Ravi'
        assert record['requirementText'] == 'Logo — Minimal logo'
        assert record['price'] == 20000
        assert record['dueDate'] == (FIXED_NOW + timedelta(days=3)).isoformat()
        assert record['source'] == 'google_sheet'
        assert 'status' not in record

    def test_raw_floats_become_decimals(self):
        from decimal import Decimal
        from shared.normalizer import SheetRow
        from shared.reconcile import build_record

        row = SheetRow('Ravi', 'Logo', '', '', '', 'ts', raw={'c': [{'v': 1.5}]})
        record = build_record(row, now=FIXED_NOW)

        assert record['rawSheetJson'] == {'c': [{'v': Decimal('1.5')}]}


class TestPlanSync:
    """Tests for plan_sync partitioning."""

    def test_partition_and_stale(self):
        from shared.reconcile import plan_sync

        records = [{'sheetRowId': 'a'}, {'sheetRowId': 'b'}]
        index = {
            'b': [{'orderId': 'o-b', 'source': 'google_sheet'}],
            'gone': [{'orderId': 'o-gone', 'source': 'google_sheet'}],
            'manual': [{'orderId': 'o-manual', 'source': 'manual'}],
        }

        plan = plan_sync(records, index)

        assert [r['sheetRowId'] for r in plan.new_records] == ['a']
        assert [r['sheetRowId'] for r in plan.existing_records] == ['b']
        assert plan.stale_order_ids == ['o-gone']

    def test_duplicate_identities_collapse(self):
        from shared.reconcile import dedupe_records

        records = [
            {'sheetRowId': 'x', 'clientName': 'first'},
            {'sheetRowId': 'y', 'clientName': 'other'},
            {'sheetRowId': 'x', 'clientName': 'last'},
        ]
        deduped = dedupe_records(records)

        assert len(deduped) == 2
        assert {r['clientName'] for r in deduped} == {'last', 'other'}


class TestReconcile:
    """Tests for reconcile against the in-memory store."""

    def test_inserts_new_rows_as_available(self, store):
        from shared.reconcile import reconcile

        result = reconcile(store, [sheet_row('ts-1'), sheet_row('ts-2')], total_rows=3, now=FIXED_NOW)

        assert result.inserted == 2
        assert result.updated == 0
        assert result.purged == 0
        assert result.total_rows == 3
        for order in store.orders.values():
            assert order['status'] == 'available'
            assert order['source'] == 'google_sheet'
            assert order['createdAt'] == FIXED_NOW.isoformat()

    def test_second_run_is_idempotent(self, store):
        from shared.reconcile import reconcile

        rows = [sheet_row('ts-1'), sheet_row('ts-2')]
        reconcile(store, rows, total_rows=2, now=FIXED_NOW)
        snapshot = {oid: dict(o) for oid, o in store.orders.items()}

        result = reconcile(store, rows, total_rows=2, now=FIXED_NOW)

        assert result.inserted == 0
        assert result.updated == 2
        assert store.orders == snapshot

    def test_update_preserves_workflow_state(self):
        from shared.reconcile import reconcile

        store = InMemoryOrderStore([
            persisted('o-1', 'ts-1', status='taken', takenBy='editor-1',
                      takenAt='2025-10-19T10:00:00+00:00'),
        ])

        result = reconcile(store, [sheet_row('ts-1', description='Changed text')], total_rows=1, now=FIXED_NOW)

        order = store.orders['o-1']
        assert result.updated == 1
        assert result.inserted == 0
        assert order['status'] == 'taken'
        assert order['takenBy'] == 'editor-1'
        assert order['takenAt'] == '2025-10-19T10:00:00+00:00'
        assert order['requirementText'] == 'Logo — Changed text'
        assert order['updatedAt'] == FIXED_NOW.isoformat()

    def test_update_hits_every_duplicate(self):
        from shared.reconcile import reconcile

        store = InMemoryOrderStore([persisted('o-1', 'ts-1'), persisted('o-2', 'ts-1')])

        result = reconcile(store, [sheet_row('ts-1', name='New')], total_rows=1, now=FIXED_NOW)

        assert result.updated == 1
        assert store.orders['o-1']['clientName'] == 'New'
        assert store.orders['o-2']['clientName'] == 'New'

    def test_without_purge_nothing_is_deleted(self):
        from shared.reconcile import reconcile

        store = InMemoryOrderStore([persisted('o-gone', 'gone'), persisted('o-m', None, source='manual')])

        result = reconcile(store, [sheet_row('ts-1')], total_rows=1, now=FIXED_NOW)

        assert result.purged == 0
        assert 'o-gone' in store.orders
        assert 'o-m' in store.orders

    def test_purge(self):
        from shared.reconcile import reconcile

        store = InMemoryOrderStore([
            persisted('o-keep', 'ts-1', status='completed'),
            persisted('o-gone', 'gone', status='taken', takenBy='editor-1'),
            persisted('o-manual', None, source='manual'),
            persisted('o-manual-id', 'm-1', source='manual'),
        ])

        result = reconcile(store, [sheet_row('ts-1')], total_rows=1, purge=True, now=FIXED_NOW)

        assert result.purged == 3
        assert set(store.orders) == {'o-keep'}
        assert store.orders['o-keep']['status'] == 'completed'

    def test_purge_keeps_manual_row_adopted_by_sheet(self):
        """A non-sheet row whose identity appears in the feed is updated to the sheet source first."""
        from shared.reconcile import reconcile

        store = InMemoryOrderStore([persisted('o-1', 'ts-1', source='manual')])

        result = reconcile(store, [sheet_row('ts-1')], total_rows=1, purge=True, now=FIXED_NOW)

        assert result.purged == 0
        assert store.orders['o-1']['source'] == 'google_sheet'

    def test_purge_deletes_stale_in_chunks(self):
        from shared.reconcile import reconcile

        store = InMemoryOrderStore([persisted(f'o-{i}', f'old-{i}') for i in range(5)])

        result = reconcile(store, [], total_rows=0, purge=True, now=FIXED_NOW, chunk_size=2)

        assert result.purged == 5
        assert [len(batch) for batch in store.delete_batches] == [2, 2, 1]
        assert store.orders == {}

    def test_store_failure_propagates(self, store):
        from shared.errors import StoreFailure
        from shared.reconcile import reconcile

        def boom(items):
            raise StoreFailure('ProvisionedThroughputExceededException')

        store.insert_orders = boom
        with pytest.raises(StoreFailure) as exc:
            reconcile(store, [sheet_row('ts-1')], total_rows=1, now=FIXED_NOW)
        assert str(exc.value) == 'ProvisionedThroughputExceededException'

    def test_result_payload(self):
        from shared.reconcile import SyncResult

        assert SyncResult(1, 2, 3, 4).to_dict() == {
            'ok': True, 'inserted': 1, 'updated': 2, 'purged': 3, 'totalRows': 4,
        }


class TestRunSync:
    """End-to-end sync with a stubbed fetcher."""

    def _config(self, **overrides):
        from shared.config import Config
        env = {'ORDERS_TABLE': 'orders-test'}
        env.update(overrides)
        return Config.from_env(env)

    def test_wrapped_feed_sync(self, store):
        from shared.sync import run_sync

        payload = gviz_payload([
            gviz_row('ts-1', 'Logo', 'Minimal', '5k', 'week', 'Ravi'),
            gviz_row('ts-2', '', '', '', '', 'Blank'),
            gviz_row('', 'Reel', 'Wedding', '10-15k', 'urgent', ''),
        ])
        calls = []

        def fetch(url, timeout):
            calls.append((url, timeout))
            return payload

        result = run_sync(self._config(), store=store, fetch=fetch, now=FIXED_NOW)

        assert result.to_dict() == {'ok': True, 'inserted': 2, 'updated': 0, 'purged': 0, 'totalRows': 3}
        assert calls[0][0].startswith('https://docs.google.com/')
        by_name = {o['clientName']: o for o in store.orders.values()}
        assert by_name['Ravi']['price'] == 5000
        assert by_name['Client']['price'] == 15000
        assert by_name['Client']['sheetRowId'] != ''

    def test_array_feed_sync_with_override(self, store):
        from shared.sync import run_sync

        payload = json.dumps([
            {'Timestamp': 'ts-1', 'Service': 'Logo', 'Description': 'Minimal', 'Budget': '2 lakh',
             'Timeline': 'month', 'Full Name': 'Ravi'},
        ]).encode()

        result = run_sync(
            self._config(),
            store=store,
            sheet_url='https://opensheet.elk.sh/sheet-id/Form',
            fetch=lambda url, timeout: payload,
            now=FIXED_NOW
        )

        assert result.inserted == 1
        order = next(iter(store.orders.values()))
        assert order['price'] == 200000
        assert order['dueDate'] == (FIXED_NOW + timedelta(days=28)).isoformat()

    def test_missing_config_fails_before_fetch(self, store):
        from shared.errors import ConfigError
        from shared.sync import run_sync

        def fetch(url, timeout):
            raise AssertionError('fetch must not run')

        with pytest.raises(ConfigError) as exc:
            run_sync(self._config(ORDERS_TABLE=''), store=store, fetch=fetch)
        assert exc.value.missing == ['ORDERS_TABLE']
