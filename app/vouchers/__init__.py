"""
app/vouchers/__init__.py
------------------------
Public voucher blueprint (apply / remove / featured).
URL prefix: /vouchers
"""
from flask import Blueprint

vouchers = Blueprint('vouchers', __name__)

from app.vouchers import routes  # noqa: E402, F401
from app.vouchers import models  # noqa: E402, F401
