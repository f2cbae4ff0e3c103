from flask import request, session, jsonify, current_app, abort
from app.auth import auth
from app.auth.decorators import token_matches, is_admin


@auth.route('/login', methods=['POST'])
def login():
    """Exchange the shared admin token for an admin session."""
    data  = request.get_json(silent=True) or request.form
    token = (data.get('token') or '').strip()

    if not token:
        abort(400, description='Admin token is required.')

    if not token_matches(token):
        current_app.logger.warning(f"Failed admin login from {request.remote_addr}")
        abort(401, description='Invalid admin token.')

    session['role']   = 'admin'
    session.permanent = True
    current_app.logger.info(f"Admin logged in from {request.remote_addr}")
    return jsonify({'authenticated': True})


@auth.route('/logout', methods=['POST'])
def logout():
    """Drop admin rights; the shopper's cart stays."""
    session.pop('role', None)
    return jsonify({'authenticated': False})


@auth.route('/status')
def status():
    return jsonify({'authenticated': is_admin()})
