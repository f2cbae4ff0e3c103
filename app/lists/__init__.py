"""
app/lists/__init__.py
---------------------
Wishlist, compare list and recently-viewed, kept in the session.
URL prefix: /lists
"""
from flask import Blueprint

lists = Blueprint('lists', __name__)

from app.lists import routes  # noqa: F401, E402
