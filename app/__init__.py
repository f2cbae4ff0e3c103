import click
from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from werkzeug.exceptions import HTTPException
from config import config

db = SQLAlchemy()


def create_app(config_name='default'):
    """Application factory - creates and configures the Flask app."""
    app = Flask(__name__)
    app.config.from_object(config[config_name])

    # ── Logging ───────────────────────────────────────────────────
    from app.utils.logging import setup_logging
    setup_logging(app)

    # ── Extensions ────────────────────────────────────────────────
    db.init_app(app)

    # ── Blueprints ────────────────────────────────────────────────
    from app.main import main as main_blueprint
    app.register_blueprint(main_blueprint)

    from app.auth import auth as auth_blueprint
    app.register_blueprint(auth_blueprint, url_prefix='/auth')

    from app.catalog import catalog as catalog_blueprint
    app.register_blueprint(catalog_blueprint, url_prefix='/products')

    from app.cart import cart as cart_blueprint
    app.register_blueprint(cart_blueprint, url_prefix='/cart')

    from app.vouchers import vouchers as vouchers_blueprint
    app.register_blueprint(vouchers_blueprint, url_prefix='/vouchers')

    from app.checkout import checkout as checkout_blueprint
    app.register_blueprint(checkout_blueprint, url_prefix='/checkout')

    from app.testimonials import testimonials as testimonials_blueprint
    app.register_blueprint(testimonials_blueprint, url_prefix='/testimonials')

    from app.lists import lists as lists_blueprint
    app.register_blueprint(lists_blueprint, url_prefix='/lists')

    from app.admin import admin as admin_blueprint
    app.register_blueprint(admin_blueprint, url_prefix='/admin')

    # ── Error Handlers ────────────────────────────────────────────
    from app.errors import StorefrontError

    @app.errorhandler(StorefrontError)
    def storefront_error(e):
        return jsonify(e.to_dict()), e.status

    @app.errorhandler(HTTPException)
    def http_error(e):
        return jsonify({'error': e.description, 'code': e.name.lower().replace(' ', '_')}), e.code

    @app.errorhandler(500)
    def internal_error(e):
        db.session.rollback()
        app.logger.error(f"Unhandled error: {e}")
        return jsonify({'error': 'Server error. Please try again.', 'code': 'server_error'}), 500

    # ── Per-request cart store lifecycle ──────────────────────────
    from app.cart.session import close_cart_store
    app.teardown_appcontext(close_cart_store)

    # ── CLI Commands ──────────────────────────────────────────────
    register_commands(app)

    # ── Schema ────────────────────────────────────────────────────
    if app.config.get('AUTO_MIGRATE'):
        from app.migration import run_auto_migration
        run_auto_migration(app)

    from app.schema import resolve_capabilities
    resolve_capabilities(app)

    # ── ProxyFix for HTTPS termination behind a proxy ─────────────
    if not app.testing and not app.debug:
        from werkzeug.middleware.proxy_fix import ProxyFix
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_prefix=1)

    return app


def register_commands(app):
    """Register custom Flask CLI commands."""

    @app.cli.command('init-db')
    def init_db():
        """Create all database tables."""
        db.create_all()
        from app.schema import resolve_capabilities
        resolve_capabilities(app)
        click.echo('✅  Database tables created.')

    @app.cli.command('patch-db')
    def patch_db():
        """Add optional columns missing from an older database."""
        from app.migration import run_auto_migration
        from app.schema import resolve_capabilities
        run_auto_migration(app)
        caps = resolve_capabilities(app)
        state = 'present' if caps.products_is_available else 'MISSING'
        click.echo(f'✅  Schema patch complete (products.is_available: {state}).')

    @app.cli.command('show-vouchers')
    def show_vouchers():
        """Show voucher usage counters (diagnostic)."""
        from app.vouchers.models import Voucher
        rows = Voucher.query.order_by(Voucher.code).all()
        if not rows:
            click.echo('No vouchers found. Run flask seed-demo first.')
            return
        click.echo(f'{"Code":<14} {"Type":<11} {"Value":>10} {"Used":>6} {"Limit":>6}  Status')
        click.echo('─' * 60)
        for v in rows:
            limit = v.usage_limit if v.usage_limit is not None else '∞'
            click.echo(f'{v.code:<14} {v.discount_type:<11} {v.discount_value:>10} '
                       f'{v.used_count:>6} {limit:>6}  {v.status_label}')

    @app.cli.command('seed-demo')
    def seed_demo():
        """Populate database with demo categories, products and vouchers."""
        from app.inventory.models import Category, Product
        from app.vouchers.models import Voucher
        from app.testimonials.models import Testimonial
        from decimal import Decimal

        click.echo("🌱 Seeding demo data...")
        db.create_all()

        if Category.query.count() == 0:
            for name in ('Pets', 'Eggs', 'Gamepasses'):
                db.session.add(Category(name=name))
            db.session.commit()
            click.echo("✅ Categories created.")

        if Product.query.count() == 0:
            cats = {c.name: c.id for c in Category.query.all()}
            demo = [
                ('Dragon Pet',      'Pets',       150000, 5),
                ('Unicorn Pet',     'Pets',        95000, 12),
                ('Golden Egg',      'Eggs',        30000, 40),
                ('Mystery Egg',     'Eggs',        15000, 0),
                ('VIP Gamepass',    'Gamepasses', 200000, 100),
                ('2x Luck Pass',    'Gamepasses',  50000, 100),
            ]
            for name, cat, price, stock in demo:
                db.session.add(Product(name=name, category_id=cats.get(cat),
                                       price=price, stock=stock,
                                       description=f'{name} delivered in game.'))
            db.session.commit()
            click.echo("✅ Products seeded.")

        if Voucher.query.count() == 0:
            db.session.add_all([
                Voucher(code='WELCOME10', name='Welcome 10%', discount_type='percentage',
                        discount_value=Decimal('10'), max_discount=25000),
                Voucher(code='SAVE20K', name='Save Rp 20.000', discount_type='fixed',
                        discount_value=Decimal('20000'), min_purchase=50000),
                Voucher(code='STUDENT15', name='Student 15%', discount_type='percentage',
                        discount_value=Decimal('15'), min_purchase=30000, max_discount=30000),
                Voucher(code='MEGA50', name='Mega 50%', discount_type='percentage',
                        discount_value=Decimal('50'), max_discount=100000, usage_limit=10),
            ])
            db.session.commit()
            click.echo("✅ Vouchers seeded (WELCOME10, SAVE20K, STUDENT15, MEGA50).")

        if Testimonial.query.count() == 0:
            db.session.add(Testimonial(username='rbx_fan', rating=5, item_bought='Dragon Pet',
                                       message='Fast delivery, trusted seller!', approved=True))
            db.session.commit()
            click.echo("✅ Testimonial seeded.")

        click.echo("✅ Demo seed complete.")
