"""
app/catalog/__init__.py
-----------------------
Public product catalog blueprint.
URL prefix: /products
"""
from flask import Blueprint

catalog = Blueprint('catalog', __name__)

from app.catalog import routes  # noqa: F401, E402
