"""
test_schema.py - Serving a database created before products.is_available.
Run: pytest test_schema.py -v
"""
import os
os.environ['FLASK_RUN_FROM_CLI'] = '1'

import pytest
from sqlalchemy import text

from app import create_app, db
from app.inventory.snapshot import read_inventory
from app.migration import run_auto_migration
from app.schema import resolve_capabilities, get_capabilities


LEGACY_DDL = [
    """CREATE TABLE categories (
        id INTEGER PRIMARY KEY, name VARCHAR(120) NOT NULL UNIQUE, created_at DATETIME)""",
    """CREATE TABLE products (
        id INTEGER PRIMARY KEY, name VARCHAR(200) NOT NULL, description TEXT,
        price INTEGER NOT NULL, image_url VARCHAR(500), category_id INTEGER,
        stock INTEGER NOT NULL DEFAULT 0, created_at DATETIME, updated_at DATETIME)""",
    "INSERT INTO categories (id, name) VALUES (1, 'Pets')",
    "INSERT INTO products (id, name, price, category_id, stock) VALUES (1, 'Dragon Pet', 150000, 1, 4)",
    "INSERT INTO products (id, name, price, category_id, stock) VALUES (2, 'Golden Egg', 30000, 1, 0)",
]


@pytest.fixture(scope='function')
def legacy_app():
    app = create_app('testing')
    with app.app_context():
        for stmt in LEGACY_DDL:
            db.session.execute(text(stmt))
        db.session.commit()
        resolve_capabilities(app)
        yield app
        db.session.remove()
        db.drop_all()
        db.session.execute(text('DROP TABLE IF EXISTS products'))
        db.session.execute(text('DROP TABLE IF EXISTS categories'))
        db.session.commit()


def test_fresh_database_is_capable():
    app = create_app('testing')
    with app.app_context():
        assert get_capabilities().products_is_available is True


def test_missing_column_detected(legacy_app):
    assert get_capabilities().products_is_available is False


def test_inventory_reads_without_column(legacy_app):
    snap = read_inventory([1, 2])
    assert snap['1'].stock_count == 4
    assert snap['1'].is_available is True
    assert snap['2'].stock_count == 0


def test_catalog_serves_without_column(legacy_app):
    client = legacy_app.test_client()
    data = client.get('/products/?q=pets').get_json()
    assert [p['name'] for p in data] == ['Dragon Pet', 'Golden Egg']
    assert all(p['is_available'] for p in data)
    assert client.get('/products/1').status_code == 200


def test_cart_works_without_column(legacy_app):
    client = legacy_app.test_client()
    resp = client.post('/cart/items', json={'product_id': 1, 'quantity': 10})
    assert resp.status_code == 200
    assert resp.get_json()['lines'][0]['quantity'] == 4


def test_admin_product_writes_need_patch(legacy_app):
    client = legacy_app.test_client()
    resp = client.post('/admin/products', json={'name': 'X', 'price': 1},
                       headers={'X-Admin-Token': 'test-admin-token'})
    assert resp.status_code == 503
    assert 'patch-db' in resp.get_json()['error']


def test_patch_adds_column(legacy_app):
    run_auto_migration(legacy_app)
    caps = resolve_capabilities(legacy_app)
    assert caps.products_is_available is True
    assert read_inventory([1])['1'].is_available is True
