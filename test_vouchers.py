"""
test_vouchers.py - Voucher validation, discount maths and usage counting.
Run: pytest test_vouchers.py -v
"""
import os
os.environ['FLASK_RUN_FROM_CLI'] = '1'

import pytest
from decimal import Decimal
from datetime import datetime, timedelta
from sqlalchemy.exc import OperationalError

from app import create_app, db
from app.errors import (
    BackendUnavailable, BelowMinimumPurchase, EmptyCode, Expired, NotFoundOrInactive,
    UsageLimitReached, UsageRecordFailed,
)
from app.inventory.models import Product
from app.vouchers.engine import (
    VoucherSnapshot, compute_discount, payable_total, record_usage, validate_voucher,
)
from app.vouchers.models import Voucher
from app.vouchers.state import VoucherApplication


# ── Fixtures ──────────────────────────────────────────────────────

@pytest.fixture(scope='function')
def client():
    app = create_app('testing')
    with app.app_context():
        db.create_all()
        yield app.test_client()
        db.session.remove()
        db.drop_all()


def make_voucher(**kwargs):
    defaults = dict(
        code='SAVE20K', name='Save 20K', discount_type='fixed',
        discount_value=Decimal('20000'), min_purchase=50000,
        is_active=True, used_count=0,
    )
    defaults.update(kwargs)
    v = Voucher(**defaults)
    db.session.add(v)
    db.session.commit()
    return v


def make_product(name='Dragon Pet', price=50000, stock=10):
    p = Product(name=name, price=price, stock=stock)
    db.session.add(p)
    db.session.commit()
    return p


class BrokenQuery:
    """Stands in for Voucher.query while the database is unreachable."""

    def filter_by(self, **kwargs):
        raise OperationalError('SELECT', {}, Exception('database is locked'))


# ── Validation ────────────────────────────────────────────────────

class TestValidation:

    def test_fixed_voucher_applies_above_minimum(self, client):
        make_voucher()
        snap = validate_voucher('SAVE20K', 100000)
        discount = compute_discount(snap, 100000)
        assert discount == 20000
        assert payable_total(100000, discount) == 80000

    def test_below_minimum_purchase(self, client):
        make_voucher()
        with pytest.raises(BelowMinimumPurchase) as exc:
            validate_voucher('SAVE20K', 40000)
        assert exc.value.min_purchase == 50000
        assert 'Rp 50.000' in exc.value.message

    def test_code_is_case_and_space_insensitive(self, client):
        make_voucher()
        assert validate_voucher('  save20k ', 100000).code == 'SAVE20K'

    def test_empty_code(self, client):
        with pytest.raises(EmptyCode):
            validate_voucher('   ', 100000)

    def test_unknown_code(self, client):
        with pytest.raises(NotFoundOrInactive):
            validate_voucher('NOPE', 100000)

    def test_inactive_voucher_looks_missing(self, client):
        make_voucher(is_active=False)
        with pytest.raises(NotFoundOrInactive):
            validate_voucher('SAVE20K', 100000)

    def test_expired(self, client):
        make_voucher(valid_until=datetime.utcnow() - timedelta(days=1))
        with pytest.raises(Expired):
            validate_voucher('SAVE20K', 100000)

    def test_usage_limit_reached(self, client):
        make_voucher(usage_limit=5, used_count=5)
        with pytest.raises(UsageLimitReached):
            validate_voucher('SAVE20K', 100000)

    def test_expiry_is_checked_before_usage_and_minimum(self, client):
        make_voucher(valid_until=datetime.utcnow() - timedelta(days=1),
                     usage_limit=1, used_count=1, min_purchase=999999)
        with pytest.raises(Expired):
            validate_voucher('SAVE20K', 100)

    def test_usage_is_checked_before_minimum(self, client):
        make_voucher(usage_limit=1, used_count=1, min_purchase=999999)
        with pytest.raises(UsageLimitReached):
            validate_voucher('SAVE20K', 100)

    def test_database_error_reports_backend_unavailable(self, client, monkeypatch):
        monkeypatch.setattr(Voucher, 'query', BrokenQuery())
        with pytest.raises(BackendUnavailable):
            validate_voucher('SAVE20K', 100000)

    def test_validate_is_idempotent(self, client):
        make_voucher()
        first  = validate_voucher('SAVE20K', 100000)
        second = validate_voucher('SAVE20K', 100000)
        assert first == second
        assert db.session.get(Voucher, first.id).used_count == 0


# ── Discount maths ────────────────────────────────────────────────

def snapshot(discount_type, value, max_discount=None):
    return VoucherSnapshot(
        id=1, code='X', name='X', description='',
        discount_type=discount_type, discount_value=Decimal(str(value)),
        max_discount=max_discount,
    )


class TestComputeDiscount:

    def test_percentage_capped_by_max_discount(self):
        v = snapshot('percentage', 10, max_discount=15000)
        assert compute_discount(v, 200000) == 15000
        assert payable_total(200000, 15000) == 185000

    def test_percentage_below_cap(self):
        assert compute_discount(snapshot('percentage', 10, 15000), 100000) == 10000

    def test_fixed_never_exceeds_subtotal(self):
        assert compute_discount(snapshot('fixed', 20000), 15000) == 15000

    def test_rounds_half_up(self):
        # 12.5% of 1004 = 125.5
        assert compute_discount(snapshot('percentage', '12.5'), 1004) == 126
        # 12.5% of 1002 = 125.25
        assert compute_discount(snapshot('percentage', '12.5'), 1002) == 125

    def test_hundred_percent_gives_zero_total(self):
        d = compute_discount(snapshot('percentage', 100), 75000)
        assert d == 75000
        assert payable_total(75000, d) == 0

    @pytest.mark.parametrize('subtotal', [0, 1, 999, 50000, 1234567])
    def test_discount_stays_within_subtotal(self, subtotal):
        for v in (snapshot('percentage', 50), snapshot('fixed', 100000),
                  snapshot('percentage', 30, max_discount=1000)):
            d = compute_discount(v, subtotal)
            assert 0 <= d <= subtotal

    def test_unknown_type_rejected(self):
        with pytest.raises(ValueError):
            compute_discount(snapshot('bogo', 1), 1000)

    def test_label(self):
        assert snapshot('percentage', 10).label == '10% OFF'
        assert snapshot('fixed', 20000).label == 'Rp 20.000 OFF'


# ── Usage recording ───────────────────────────────────────────────

class TestRecordUsage:

    def test_increments_once(self, client):
        v = make_voucher(usage_limit=5, used_count=2)
        record_usage(v.id)
        assert db.session.get(Voucher, v.id).used_count == 3

    def test_never_exceeds_limit(self, client):
        v = make_voucher(usage_limit=1, used_count=0)
        record_usage(v.id)
        with pytest.raises(UsageRecordFailed):
            record_usage(v.id)
        assert db.session.get(Voucher, v.id).used_count == 1

    def test_unlimited_voucher(self, client):
        v = make_voucher(usage_limit=None, used_count=41)
        record_usage(v.id)
        assert db.session.get(Voucher, v.id).used_count == 42

    def test_deactivated_between_apply_and_use(self, client):
        v = make_voucher()
        v.is_active = False
        db.session.commit()
        with pytest.raises(UsageRecordFailed):
            record_usage(v.id)
        assert db.session.get(Voucher, v.id).used_count == 0

    def test_missing_voucher(self, client):
        with pytest.raises(UsageRecordFailed):
            record_usage(9999)

    def test_database_error_reports_usage_failure(self, client, monkeypatch):
        v = make_voucher(usage_limit=5, used_count=2)

        def locked(*args, **kwargs):
            raise OperationalError('UPDATE', {}, Exception('database is locked'))

        monkeypatch.setattr(db.session, 'execute', locked)
        with pytest.raises(UsageRecordFailed):
            record_usage(v.id)
        monkeypatch.undo()
        db.session.expire_all()
        assert db.session.get(Voucher, v.id).used_count == 2


# ── Application state ─────────────────────────────────────────────

class TestVoucherApplication:

    def test_apply_then_remove(self, client):
        make_voucher()
        storage = {}
        state   = VoucherApplication(storage)
        applied = state.apply('save20k', 100000)
        assert applied.discount == 20000
        assert state.current().snapshot.code == 'SAVE20K'
        state.remove()
        assert state.current() is None
        assert storage == {}

    def test_failed_apply_drops_previous_voucher(self, client):
        make_voucher()
        state = VoucherApplication({})
        state.apply('SAVE20K', 100000)
        with pytest.raises(NotFoundOrInactive):
            state.apply('BOGUS', 100000)
        assert state.is_applied is False

    def test_refresh_recomputes_discount(self, client):
        make_voucher(code='TEN', discount_type='percentage',
                     discount_value=Decimal('10'), min_purchase=0)
        state = VoucherApplication({})
        state.apply('TEN', 100000)
        assert state.refresh(30000).discount == 3000

    def test_refresh_below_minimum_drops_voucher(self, client):
        make_voucher()
        state = VoucherApplication({})
        state.apply('SAVE20K', 100000)
        assert state.refresh(30000) is None
        assert state.is_applied is False

    def test_backend_error_leaves_nothing_applied(self, client, monkeypatch):
        make_voucher()
        state = VoucherApplication({})
        state.apply('SAVE20K', 100000)
        monkeypatch.setattr(Voucher, 'query', BrokenQuery())
        with pytest.raises(BackendUnavailable):
            state.apply('SAVE20K', 100000)
        assert state.is_applied is False

    def test_unreadable_state_counts_as_unapplied(self):
        storage = {'applied_voucher': {'voucher': {'code': 'X'}}}
        state   = VoucherApplication(storage)
        assert state.current() is None
        assert 'applied_voucher' not in storage


# ── Routes ────────────────────────────────────────────────────────

class TestVoucherRoutes:

    def _fill_cart(self, client, price=50000, qty=2):
        p = make_product(price=price, stock=10)
        resp = client.post('/cart/items', json={'product_id': p.id, 'quantity': qty})
        assert resp.status_code == 200
        return p

    def test_apply_does_not_count_usage(self, client):
        v = make_voucher()
        self._fill_cart(client)
        resp = client.post('/vouchers/apply', json={'code': 'save20k'})
        assert resp.status_code == 200
        data = resp.get_json()
        assert data['discount'] == 20000
        assert data['total'] == 80000
        assert 'Rp 20.000' in data['message']
        assert db.session.get(Voucher, v.id).used_count == 0

    def test_apply_rejections_carry_codes(self, client):
        make_voucher(usage_limit=5, used_count=5)
        self._fill_cart(client)
        resp = client.post('/vouchers/apply', json={'code': 'SAVE20K'})
        assert resp.status_code == 422
        assert resp.get_json()['code'] == 'usage_limit_reached'

        resp = client.post('/vouchers/apply', json={'code': ''})
        assert resp.get_json()['code'] == 'empty_code'

        resp = client.post('/vouchers/apply', json={'code': 'MISSING'})
        assert resp.status_code == 404

    def test_below_minimum_reports_minimum(self, client):
        make_voucher()
        self._fill_cart(client, price=20000, qty=2)
        resp = client.post('/vouchers/apply', json={'code': 'SAVE20K'})
        data = resp.get_json()
        assert data['code'] == 'below_minimum_purchase'
        assert data['min_purchase'] == 50000

    def test_remove_applied(self, client):
        make_voucher()
        self._fill_cart(client)
        client.post('/vouchers/apply', json={'code': 'SAVE20K'})
        resp = client.delete('/vouchers/applied')
        assert resp.get_json()['voucher'] is None
        assert client.get('/vouchers/applied').get_json()['discount'] == 0

    def test_discount_follows_cart_changes(self, client):
        make_voucher(code='TEN', discount_type='percentage',
                     discount_value=Decimal('10'), min_purchase=0)
        p = self._fill_cart(client, price=50000, qty=2)
        client.post('/vouchers/apply', json={'code': 'TEN'})
        resp = client.patch(f'/cart/items/{p.id}', json={'quantity': 1})
        assert resp.get_json()['discount'] == 5000

        client.delete(f'/cart/items/{p.id}')
        assert client.get('/vouchers/applied').get_json()['voucher'] is None

    def test_cart_drop_below_minimum_removes_voucher(self, client):
        make_voucher()
        p = self._fill_cart(client, price=30000, qty=2)
        assert client.post('/vouchers/apply', json={'code': 'SAVE20K'}).status_code == 200

        data = client.patch(f'/cart/items/{p.id}', json={'quantity': 1}).get_json()
        assert data['voucher'] is None
        assert data['discount'] == 0
        assert data['total'] == 30000
        assert client.get('/vouchers/applied').get_json()['voucher'] is None

    def test_apply_while_database_down(self, client, monkeypatch):
        make_voucher()
        self._fill_cart(client)
        assert client.post('/vouchers/apply', json={'code': 'SAVE20K'}).status_code == 200

        monkeypatch.setattr(Voucher, 'query', BrokenQuery())
        resp = client.post('/vouchers/apply', json={'code': 'SAVE20K'})
        assert resp.status_code == 503
        assert resp.get_json()['code'] == 'backend_unavailable'
        assert client.get('/vouchers/applied').get_json()['voucher'] is None

    def test_featured_excludes_expired_and_used_up(self, client):
        make_voucher(code='BIG', discount_value=Decimal('90000'), min_purchase=0)
        make_voucher(code='OLD', discount_value=Decimal('80000'),
                     valid_until=datetime.utcnow() - timedelta(days=1))
        make_voucher(code='DONE', discount_value=Decimal('70000'), usage_limit=1, used_count=1)
        make_voucher(code='OFF', discount_value=Decimal('60000'), is_active=False)
        make_voucher(code='SMALL', discount_value=Decimal('5000'))
        codes = [v['code'] for v in client.get('/vouchers/featured').get_json()]
        assert codes[0] == 'BIG'
        assert 'OLD' not in codes and 'OFF' not in codes and 'DONE' not in codes
