# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/techsheet/routes/auth.py
"""
Authentication API routes

- Self-registration creates a pending guest account and never logs it in
- Login distinguishes wrong credentials (401) from pending approval (403)
- Session management with token-based auth
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..services import auth_service
from ..services import session_service
from ..services import permission_service
from ..services.auth_service import (
    DuplicateUsernameError,
    InvalidCredentialsError,
    NotApprovedError,
)
from ..validation import ValidationError
from ..decorators import require_auth


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1]


@auth_bp.post("/register")
def register_route():
    """
    Register a new account.

    Request body: username, password, email, name (required), company (optional).

    The account is created as role=guest, approved=false. No session is
    returned; an administrator must approve the account first.
    """
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return jsonify({"error": "Request body must be a JSON object"}), 400
    username = data.get("username")
    password = data.get("password")
    email = data.get("email")
    name = data.get("name")

    if not all([username, password, email, name]):
        return jsonify({"error": "username, password, email and name are required"}), 400

    try:
        user = auth_service.register_user(
            username=username,
            email=email,
            password=password,
            name=name,
            company=data.get("company"),
        )
    except DuplicateUsernameError as e:
        return jsonify({"error": str(e)}), 409
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    permission_service.log_security_event(
        user_id=user.id,
        event_type="USER_REGISTERED",
        success=True,
        resource=request.path,
        ip_address=request.remote_addr,
        user_agent=request.headers.get("User-Agent"),
    )
    current_app.logger.info("Registered pending account %s", user.username)

    return jsonify({
        "user": user.to_dict(),
        "message": auth_service.REGISTRATION_PENDING_MESSAGE,
    }), 201


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create session token.

    Returns user info, permissions and session token on success.
    Token must be included in Authorization header for protected routes.
    """
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return jsonify({"error": "Request body must be a JSON object"}), 400
    username = data.get("username")
    password = data.get("password")

    if not all([username, password]):
        return jsonify({"error": "username and password required"}), 400
    if not isinstance(username, str) or not isinstance(password, str):
        return jsonify({"error": "username and password must be strings"}), 400

    user_agent = request.headers.get("User-Agent")
    ip_address = request.remote_addr

    try:
        user = auth_service.authenticate(username, password)
    except InvalidCredentialsError:
        permission_service.log_security_event(
            user_id=None,
            event_type="LOGIN_FAILED",
            success=False,
            resource=request.path,
            reason=f"Invalid credentials for {username}",
            ip_address=ip_address,
            user_agent=user_agent,
        )
        return jsonify({"error": "Invalid credentials"}), 401
    except NotApprovedError:
        pending = auth_service.get_user_by_username(username)
        permission_service.log_security_event(
            user_id=pending.id if pending else None,
            event_type="LOGIN_PENDING_APPROVAL",
            success=False,
            resource=request.path,
            reason="Account not approved",
            ip_address=ip_address,
            user_agent=user_agent,
        )
        return jsonify({
            "error": "Account pending administrator approval",
            "pending_approval": True,
        }), 403

    try:
        session, token = session_service.create_session(
            user_id=user.id,
            user_agent=user_agent,
            ip_address=ip_address
        )
    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({
        "user": user.to_dict(),
        "permissions": sorted(permission_service.get_user_permissions(user)),
        "token": token,
        "session": session.to_dict(),
        "message": "Login successful"
    }), 200


@auth_bp.post("/logout")
def logout_route():
    """
    Revoke session token (logout).

    Expects Authorization header: Bearer <token>
    """
    token = _bearer_token()
    if not token:
        return jsonify({"error": "Authorization header required"}), 401

    if not session_service.revoke_session(token, reason="User logout"):
        return jsonify({"error": "Invalid or expired token"}), 401

    return jsonify({"message": "Logout successful"}), 200


@auth_bp.post("/validate")
def validate_route():
    """
    Validate session token and return user info with permissions.

    Frontend can check if token is still valid and get permissions
    for UI filtering (hiding nav items, buttons, etc.)
    """
    token = _bearer_token()
    if not token:
        return jsonify({"error": "Authorization header required"}), 401

    context = session_service.validate_session(token)
    if not context:
        return jsonify({"error": "Invalid or expired token"}), 401

    return jsonify({
        "user": context.user.to_dict(),
        "permissions": sorted(permission_service.get_user_permissions(context.user)),
        "message": "Token valid"
    }), 200


@auth_bp.get("/me")
@require_auth
def me_route():
    """The current principal."""
    return jsonify({
        "user": g.current_user.to_dict(),
        "permissions": sorted(permission_service.get_user_permissions(g.current_user)),
    })
