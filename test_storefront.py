"""
test_storefront.py - Catalog, session lists, testimonials and stats.
Run: pytest test_storefront.py -v
"""
import os
os.environ['FLASK_RUN_FROM_CLI'] = '1'

import pytest
from datetime import datetime, timedelta

from app import create_app, db
from app.inventory.models import Category, Product
from app.lists.store import SessionList
from app.testimonials.models import Testimonial


# ── Fixtures ──────────────────────────────────────────────────────

@pytest.fixture(scope='function')
def client():
    app = create_app('testing')
    with app.app_context():
        db.create_all()
        yield app.test_client()
        db.session.remove()
        db.drop_all()


@pytest.fixture
def catalog(client):
    pets = Category(name='Pets')
    eggs = Category(name='Eggs')
    db.session.add_all([pets, eggs])
    db.session.commit()

    now = datetime.utcnow()
    products = [
        Product(name='Dragon Pet', price=150000, stock=5, category_id=pets.id,
                description='Flies fast', created_at=now - timedelta(days=3)),
        Product(name='Unicorn Pet', price=95000, stock=12, category_id=pets.id,
                created_at=now - timedelta(days=1)),
        Product(name='Golden Egg', price=30000, stock=40, category_id=eggs.id,
                description='100% shiny', created_at=now - timedelta(days=2)),
        Product(name='Hidden Egg', price=1000, stock=1, category_id=eggs.id,
                is_available=False, created_at=now),
    ]
    db.session.add_all(products)
    db.session.commit()
    return {p.name: p for p in products}


def names(resp):
    return [p['name'] for p in resp.get_json()]


# ── Catalog ───────────────────────────────────────────────────────

class TestCatalog:

    def test_default_sort_price_high_hides_unavailable(self, client, catalog):
        assert names(client.get('/products/')) == ['Dragon Pet', 'Unicorn Pet', 'Golden Egg']

    @pytest.mark.parametrize('sort, expected', [
        ('price_low',  ['Golden Egg', 'Unicorn Pet', 'Dragon Pet']),
        ('name_asc',   ['Dragon Pet', 'Golden Egg', 'Unicorn Pet']),
        ('name_desc',  ['Unicorn Pet', 'Golden Egg', 'Dragon Pet']),
        ('stock_high', ['Golden Egg', 'Unicorn Pet', 'Dragon Pet']),
        ('newest',     ['Unicorn Pet', 'Golden Egg', 'Dragon Pet']),
    ])
    def test_sorts(self, client, catalog, sort, expected):
        assert names(client.get(f'/products/?sort={sort}')) == expected

    def test_category_filter(self, client, catalog):
        cat_id = catalog['Golden Egg'].category_id
        assert names(client.get(f'/products/?category={cat_id}')) == ['Golden Egg']
        assert client.get('/products/?category=pets').status_code == 400

    def test_search_matches_name_description_and_category(self, client, catalog):
        assert names(client.get('/products/?q=unicorn')) == ['Unicorn Pet']
        assert names(client.get('/products/?q=flies')) == ['Dragon Pet']
        assert names(client.get('/products/?q=EGGS')) == ['Golden Egg']

    def test_search_escapes_wildcards(self, client, catalog):
        assert names(client.get('/products/', query_string={'q': '100%'})) == ['Golden Egg']
        assert names(client.get('/products/?q=_')) == []

    def test_search_dropdown(self, client, catalog):
        assert names(client.get('/products/search?q=pet')) == ['Dragon Pet', 'Unicorn Pet']
        assert client.get('/products/search?q=').get_json() == []

    def test_detail_and_unavailable(self, client, catalog):
        resp = client.get(f"/products/{catalog['Dragon Pet'].id}")
        assert resp.status_code == 200
        assert resp.get_json()['category'] == 'Pets'
        assert client.get(f"/products/{catalog['Hidden Egg'].id}").status_code == 404
        assert client.get('/products/9999').status_code == 404

    def test_categories(self, client, catalog):
        assert [c['name'] for c in client.get('/products/categories').get_json()] == ['Eggs', 'Pets']


# ── Session lists ─────────────────────────────────────────────────

class TestSessionList:

    def test_push_moves_to_front_and_trims(self):
        lst = SessionList({}, 'recent', limit=3)
        for pid in ('1', '2', '3', '2', '4'):
            lst.push({'id': pid})
        assert lst.ids() == ['4', '2', '3']

    def test_add_respects_limit_and_duplicates(self):
        lst = SessionList({}, 'compare', limit=2)
        assert lst.add('1') and lst.add('2')
        assert not lst.add('3')
        assert not lst.add('1')
        assert lst.ids() == ['1', '2']

    def test_toggle(self):
        lst = SessionList({}, 'wish')
        assert lst.toggle('5') is True
        assert lst.toggle('5') is False
        assert lst.items() == []


class TestListRoutes:

    def test_wishlist_toggle(self, client, catalog):
        pid = catalog['Dragon Pet'].id
        assert client.post(f'/lists/wishlist/{pid}').get_json()['wishlisted'] is True
        assert names(client.get('/lists/wishlist')) == ['Dragon Pet']
        assert client.post(f'/lists/wishlist/{pid}').get_json()['wishlisted'] is False
        assert client.get('/lists/wishlist').get_json() == []

    def test_compare_limit(self, client, catalog):
        for i in range(3):
            db.session.add(Product(name=f'Extra {i}', price=1000, stock=1))
        db.session.commit()
        ids = [p.id for p in Product.query.filter(Product.is_available.is_(True)).all()]

        for pid in ids[:4]:
            assert client.post(f'/lists/compare/{pid}').status_code == 200
        resp = client.post(f'/lists/compare/{ids[4]}')
        assert resp.status_code == 409
        assert 'Maximum 4' in resp.get_json()['error']

        client.delete('/lists/compare')
        assert client.get('/lists/compare').get_json() == []

    def test_unavailable_product_not_listed(self, client, catalog):
        assert client.post(f"/lists/wishlist/{catalog['Hidden Egg'].id}").status_code == 404

    def test_recently_viewed_newest_first(self, client, catalog):
        client.get(f"/products/{catalog['Dragon Pet'].id}")
        client.get(f"/products/{catalog['Golden Egg'].id}")
        client.get(f"/products/{catalog['Dragon Pet'].id}")
        assert names(client.get('/lists/recently-viewed')) == ['Dragon Pet', 'Golden Egg']


# ── Testimonials ──────────────────────────────────────────────────

class TestTestimonials:

    def test_submit_waits_for_approval(self, client):
        resp = client.post('/testimonials/', json={
            'username': 'rbx_fan', 'rating': 5, 'item_bought': 'Dragon Pet', 'message': 'Fast!',
        })
        assert resp.status_code == 201
        assert Testimonial.query.one().approved is False
        assert client.get('/testimonials/').get_json() == []

    def test_submit_validation(self, client):
        resp = client.post('/testimonials/', json={'username': 'x', 'rating': 9})
        assert resp.status_code == 400
        fields = resp.get_json()['fields']
        assert set(fields) == {'rating', 'item_bought', 'message'}

    def test_lists_latest_approved(self, client):
        now = datetime.utcnow()
        for i in range(8):
            db.session.add(Testimonial(username=f'u{i}', rating=5, item_bought='Egg',
                                       message='ok', approved=True,
                                       created_at=now - timedelta(hours=i)))
        db.session.commit()
        data = client.get('/testimonials/').get_json()
        assert [t['username'] for t in data] == ['u0', 'u1', 'u2', 'u3', 'u4', 'u5']


# ── Main ──────────────────────────────────────────────────────────

class TestMain:

    def test_stats(self, client, catalog):
        db.session.add_all([
            Testimonial(username='a', rating=5, item_bought='x', message='m', approved=True),
            Testimonial(username='b', rating=4, item_bought='x', message='m', approved=True),
            Testimonial(username='c', rating=4, item_bought='x', message='m', approved=True),
            Testimonial(username='d', rating=1, item_bought='x', message='m', approved=False),
        ])
        db.session.commit()
        data = client.get('/stats').get_json()
        assert data == {
            'total_products': 3,
            'total_testimonials': 3,
            'total_categories': 2,
            'avg_rating': 4.3,
        }

    def test_stats_empty(self, client):
        assert client.get('/stats').get_json()['avg_rating'] == 0

    def test_health(self, client):
        resp = client.get('/health')
        assert resp.status_code == 200
        assert resp.get_json()['status'] == 'ok'

    def test_unknown_route_is_json(self, client):
        resp = client.get('/nope')
        assert resp.status_code == 404
        assert resp.get_json()['code'] == 'not_found'
