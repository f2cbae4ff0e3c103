"""
app/auth/decorators.py
----------------------
Route protection for the admin panel.

The admin gate is a static shared secret (ADMIN_TOKEN). A browser logs
in once through /auth/login and carries role='admin' in its session;
scripts may send the token in the X-Admin-Token header instead.

Usage:
    from app.auth.decorators import admin_required

    @admin.route('/vouchers')
    @admin_required
    def list_vouchers():
        ...
"""
import hmac
from functools import wraps
from flask import session, request, abort, current_app


def token_matches(candidate) -> bool:
    """Constant-time comparison against the configured ADMIN_TOKEN."""
    expected = current_app.config.get('ADMIN_TOKEN') or ''
    if not expected or not candidate:
        return False
    return hmac.compare_digest(str(candidate).encode(), expected.encode())


def is_admin() -> bool:
    if session.get('role') == 'admin':
        return True
    return token_matches(request.headers.get('X-Admin-Token'))


def admin_required(f):
    """
    Allow access only to admin sessions or requests carrying the token.
    Everyone else receives 401 Unauthorized.
    """
    @wraps(f)
    def decorated(*args, **kwargs):
        if not is_admin():
            abort(401, description='Admin access required.')
        return f(*args, **kwargs)
    return decorated
