"""
Authentication Routes
Session login and logout for the JSON API
"""
from flask import current_app, jsonify, request
from flask_login import login_user, logout_user, current_user, login_required
from . import auth_bp
from .forms import LoginForm
from utils.forms import form_data_from_json
from models.users import User
from extensions import limiter


@auth_bp.route('/login', methods=['POST'])
@limiter.limit("10 per minute")  # Rate limit login attempts
def login():
    """Log in with email and password"""
    form = LoginForm(formdata=form_data_from_json(request.get_json(silent=True)))
    if not form.validate():
        return jsonify({'error': 'Validation failed', 'errors': form.errors}), 400

    email = form.email.data.strip().lower()
    user = User.query.filter_by(email=email).first()

    # Same message for unknown user and wrong password to prevent user enumeration
    if not user or not user.check_password(form.password.data):
        current_app.logger.warning(f'Failed login attempt for {email}')
        return jsonify({'error': 'Invalid email or password'}), 401

    if not user.is_active:
        return jsonify({'error': 'This account has been deactivated'}), 403

    login_user(user, remember=form.remember.data)
    current_app.logger.info(f'User logged in: {email}')
    return jsonify({'id': user.id, 'name': user.name, 'family_id': user.family_id, 'role': user.role})


@auth_bp.route('/logout', methods=['POST'])
@login_required
def logout():
    """User logout"""
    if current_user.is_authenticated:
        logout_user()
    return jsonify({'success': True})
