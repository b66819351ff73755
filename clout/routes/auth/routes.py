import logging

from flask import jsonify
from flask_login import current_user, login_required, login_user, logout_user

from clout import csrf, db, limiter, login_manager
from clout.forms import form_from_json, submitted_fields
from clout.forms.auth import LoginForm, ProfileForm, RegistrationForm, sanitize_input
from clout.models import User
from clout.routes.auth import bp
from clout.utils.api_utils import add_security_headers, form_error_response

logger = logging.getLogger(__name__)


@login_manager.user_loader
def load_user(user_id):
    return db.session.get(User, int(user_id))


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify({"error": "Authentication required"}), 401


@bp.route("/register", methods=["POST"])
@csrf.exempt
@limiter.limit("5 per hour")
def register():
    form = form_from_json(RegistrationForm)
    if not form.validate():
        return form_error_response(form)

    user = User(
        username=form.username.data,
        email=form.email.data.lower(),
        role=form.role.data or "user",
    )
    user.set_password(form.password.data)

    db.session.add(user)
    db.session.commit()

    login_user(user)
    logger.info(f"New {user.role} registered: {user.username}")

    return jsonify({"user": user.to_dict(include_private=True)}), 201


@bp.route("/login", methods=["POST"])
@csrf.exempt
@limiter.limit("10 per minute")
def login():
    form = form_from_json(LoginForm)
    if not form.validate():
        return form_error_response(form)

    user = User.query.filter_by(email=form.email.data.lower()).first()
    if user is None or not user.check_password(form.password.data):
        return jsonify({"error": "Invalid email or password"}), 401

    if not user.is_active:
        return jsonify({"error": "Your account has been deactivated"}), 403

    login_user(user)
    user.update_last_login()

    return jsonify({"user": user.to_dict(include_private=True)})


@bp.route("/logout", methods=["POST"])
@login_required
def logout():
    logout_user()
    return jsonify({"message": "Logged out"})


@bp.route("/me")
@login_required
@add_security_headers
def me():
    return jsonify({"user": current_user.to_dict(include_private=True)})


@bp.route("/me", methods=["PATCH"])
@login_required
def update_me():
    form = form_from_json(ProfileForm)
    if not form.validate():
        return form_error_response(form)

    fields = submitted_fields(form)
    if "display_name" in fields:
        current_user.set_display_name(form.display_name.data)
    if "bio" in fields:
        current_user.bio = sanitize_input(form.bio.data)
    if "avatar_url" in fields:
        current_user.avatar_url = form.avatar_url.data

    db.session.commit()
    return jsonify({"user": current_user.to_dict(include_private=True)})
