from flask import Blueprint, request, jsonify, g

from security.auth_service import (
    admit_login,
    login_parent,
    logout_parent,
    refresh_tokens,
    register_parent,
    serialize_parent,
)
from security.rbac import require_roles
from utils.auth_context import login_required
from utils.client_info import client_ip


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.before_request
def _clear_rate_limit():
    g.rate_limit = None


@auth_bp.after_request
def _rate_limit_headers(resp):
    decision = getattr(g, "rate_limit", None)
    if decision is not None and decision.allowed:
        resp.headers["X-RateLimit-Remaining"] = str(decision.remaining)
        resp.headers["X-RateLimit-Reset"] = str(int(decision.reset_at))
    return resp


@auth_bp.post("/register")
def register():
    data = request.get_json(silent=True) or {}
    result = register_parent(data)
    return jsonify(message="Parent registered successfully", **result), 201


@auth_bp.post("/login")
def login():
    origin = client_ip()
    admit_login(origin)

    data = request.get_json(silent=True) or {}
    result = login_parent(data, origin)
    return jsonify(message="Login successful", **result), 200


@auth_bp.post("/refresh")
def refresh():
    data = request.get_json(silent=True) or {}
    result = refresh_tokens(data)
    return jsonify(message="Token refreshed successfully", **result), 200


@auth_bp.post("/logout")
@login_required
@require_roles("PARENT")
def logout():
    return jsonify(logout_parent(g.user)), 200


@auth_bp.get("/me")
@login_required
@require_roles("PARENT")
def me():
    return jsonify(parent=serialize_parent(g.user)), 200
