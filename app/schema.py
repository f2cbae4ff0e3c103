"""
app/schema.py
─────────────
Declared schema capabilities, resolved once at startup.

Databases created before `products.is_available` existed are still
served: the flag below tells the inventory reader and the catalog
whether that column may be selected. Nothing inspects the schema per
request.
"""
import logging
from dataclasses import dataclass

from flask import current_app
from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError

from app import db

logger = logging.getLogger(__name__)

EXTENSION_KEY = 'storefront_schema'


@dataclass(frozen=True)
class SchemaCapabilities:
    products_is_available: bool = True


def resolve_capabilities(app) -> SchemaCapabilities:
    """
    Inspect the live database and store the result on the app.
    A missing `products` table counts as capable: create_all() will
    build it from the current models.
    """
    with app.app_context():
        try:
            inspector = inspect(db.engine)
            tables = inspector.get_table_names()
            if 'products' in tables:
                cols = {c['name'] for c in inspector.get_columns('products')}
                caps = SchemaCapabilities(products_is_available='is_available' in cols)
            else:
                caps = SchemaCapabilities()
        except SQLAlchemyError as e:
            logger.warning(f"Schema inspection failed, assuming current schema: {e}")
            caps = SchemaCapabilities()

    app.extensions[EXTENSION_KEY] = caps
    if not caps.products_is_available:
        logger.warning("products.is_available missing; every product treated as available. Run `flask patch-db`.")
    return caps


def get_capabilities() -> SchemaCapabilities:
    return current_app.extensions.get(EXTENSION_KEY, SchemaCapabilities())
