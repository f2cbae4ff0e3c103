"""
app/checkout/__init__.py
------------------------
WhatsApp checkout blueprint.
URL prefix: /checkout
"""
from flask import Blueprint

checkout = Blueprint('checkout', __name__)

from app.checkout import routes  # noqa: F401, E402
