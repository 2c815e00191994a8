from flask import Blueprint, request, jsonify, current_app
from flask_login import login_user, logout_user, login_required, current_user
from cipherquiz import bcrypt
from cipherquiz.models import AdminUser

main = Blueprint('main', __name__)


@main.route('/')
def index():
    return jsonify({'status': 'ok', 'message': 'CipherQuiz server is running'})


@main.route('/admin/login', methods=['POST', 'OPTIONS'])
def login():
    if request.method == 'OPTIONS':
        return jsonify({'status': 'ok'}), 200
    data = request.get_json(silent=True) or {}
    password = str(data.get('password') or '')
    password_hash = current_app.config.get('ADMIN_PASSWORD_HASH')
    if password and password_hash and bcrypt.check_password_hash(password_hash, password):
        user = AdminUser()
        login_user(user)
        current_app.logger.info("[admin-login] success")
        return jsonify({"success": True, "user": user.to_dict()})
    current_app.logger.warning("[admin-login] rejected")
    return jsonify({"success": False, "message": "Invalid credentials"}), 401


@main.route('/admin/check_login', methods=['GET', 'OPTIONS'])
def check_login():
    if request.method == 'OPTIONS':
        return jsonify({'status': 'ok'}), 200

    @login_required
    def protected_check():
        return jsonify({"success": True, "user": current_user.to_dict()})

    return protected_check()


@main.route('/admin/logout', methods=['POST', 'OPTIONS'])
@login_required
def logout():
    logout_user()
    return jsonify({"success": True})
