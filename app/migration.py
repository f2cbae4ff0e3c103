import logging
from sqlalchemy import text, inspect
from sqlalchemy.exc import SQLAlchemyError
from app import db

logger = logging.getLogger(__name__)


def run_auto_migration(app):
    """
    Add missing tables and optional columns on an existing database.
    Used by `flask patch-db` and, when AUTO_MIGRATE is on, at startup.
    """
    with app.app_context():
        try:
            logger.info("🔄 Checking database schema...")

            # Importing registers every model with db.metadata
            from app.inventory import models as _inventory       # noqa: F401
            from app.vouchers import models as _vouchers         # noqa: F401
            from app.testimonials import models as _testimonials # noqa: F401

            db.create_all()

            with db.engine.connect() as conn:
                inspector = inspect(conn)
                existing_tables = inspector.get_table_names()

                def column_exists(table, column):
                    if table not in existing_tables:
                        return False
                    cols = [c['name'] for c in inspector.get_columns(table)]
                    return column in cols

                # Products: is_available
                if 'products' in existing_tables and not column_exists('products', 'is_available'):
                    logger.info("🛠️  Adding 'is_available' to products")
                    conn.execute(text("ALTER TABLE products ADD COLUMN is_available BOOLEAN DEFAULT TRUE NOT NULL"))

                # Vouchers: max_discount
                if 'vouchers' in existing_tables and not column_exists('vouchers', 'max_discount'):
                    logger.info("🛠️  Adding 'max_discount' to vouchers")
                    conn.execute(text("ALTER TABLE vouchers ADD COLUMN max_discount INTEGER"))

                conn.commit()
                logger.info("✅ Database schema check complete.")

        except SQLAlchemyError as e:
            # The app still starts; the schema flag reports what is missing
            logger.error(f"❌ Schema migration failed: {e}")
