"""
Vault API routes.

Endpoints (all under /api/v1/vault, caller taken from the bearer token):
- POST /users, PUT /users/me, GET /users/<identity>
- POST /providers, GET /providers/<identity>, POST /providers/<identity>/verify
- POST /records - owner writes own record
- POST /owners/<owner>/records - provider writes a record for owner
- GET /owners/<owner>/records/<id> - authorized read (audited)
- GET /owners/<owner>/records/<id>/emergency - emergency contact read (audited)
- POST /permissions, POST /permissions/<id>/revoke
- GET /owners/<owner>/permissions/<accessor>[/<id>]
- GET /owners/<owner>/authorized?accessor=..&data_type=..
- PUT /emergency/contact, PUT /emergency/enabled, GET /owners/<owner>/emergency
- GET /owners/<owner>/access-logs[/<id>]
- GET /clock, POST /clock/advance
"""

import base64
import binascii
from functools import wraps
from typing import Optional

from flask import Blueprint, request, jsonify

from healthvault.db.session import get_db_session
from healthvault.errors import Unauthorized, VaultError
from healthvault.services import (
    AuditLogService,
    AuthorizationEngine,
    EmergencyAccessService,
    LogicalClockService,
    PermissionLedgerService,
    RecordStoreService,
    RegistryService,
    get_identity_service,
)


bp = Blueprint("vault", __name__, url_prefix="/api/v1/vault")


def _get_caller():
    """Get the authenticated caller identity from the Authorization header."""
    return get_identity_service().resolve_caller(request.headers.get("Authorization", ""))


def requires_caller(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        caller = _get_caller()
        if caller is None:
            return jsonify({"ok": False, "error": "Unauthenticated"}), 401
        return view(caller, *args, **kwargs)
    return wrapper


@bp.errorhandler(VaultError)
def handle_vault_error(error: VaultError):
    return jsonify(error.to_dict()), error.http_status


def _json() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _decode_ciphertext(data: dict) -> Optional[bytes]:
    """Base64 body field as bytes; None when missing or malformed (rejected by the service)."""
    raw = data.get("ciphertext")
    if not isinstance(raw, str) or not raw:
        return None
    try:
        return base64.b64decode(raw, validate=True)
    except (binascii.Error, ValueError):
        return None



def _as_dict(model):
    return model.to_dict() if model is not None else None


# =============================================================================
# Identity & Registry
# =============================================================================

@bp.route("/users", methods=["POST"])
@requires_caller
def register_user(caller):
    data = _json()
    identity = RegistryService(get_db_session()).register_user(caller, data.get("profile_ref"))
    return jsonify({"ok": True, "identity": identity}), 201


@bp.route("/users/me", methods=["PUT"])
@requires_caller
def update_user_profile(caller):
    data = _json()
    RegistryService(get_db_session()).update_user_profile(caller, data.get("profile_ref"))
    return jsonify({"ok": True})


@bp.route("/users/<identity>", methods=["GET"])
@requires_caller
def get_user_profile(caller, identity):
    user = RegistryService(get_db_session()).get_user_profile(identity)
    return jsonify({"ok": True, "user": _as_dict(user)})


@bp.route("/providers", methods=["POST"])
@requires_caller
def register_provider(caller):
    data = _json()
    RegistryService(get_db_session()).register_provider(
        caller, data.get("name"), data.get("provider_type")
    )
    return jsonify({"ok": True, "identity": caller}), 201


@bp.route("/providers/<identity>", methods=["GET"])
@requires_caller
def get_provider_info(caller, identity):
    provider = RegistryService(get_db_session()).get_provider_info(identity)
    return jsonify({"ok": True, "provider": _as_dict(provider)})


@bp.route("/providers/<identity>/verify", methods=["POST"])
@requires_caller
def verify_provider(caller, identity):
    RegistryService(get_db_session()).verify_provider(caller, identity)
    return jsonify({"ok": True})


# =============================================================================
# Records
# =============================================================================

@bp.route("/records", methods=["POST"])
@requires_caller
def add_health_data(caller):
    data = _json()
    record_id = RecordStoreService(get_db_session()).add_health_data(
        caller,
        data_type=data.get("data_type"),
        ciphertext=_decode_ciphertext(data),
        checksum=data.get("checksum"),
        external_ref=data.get("external_ref"),
    )
    return jsonify({"ok": True, "record_id": record_id}), 201


@bp.route("/owners/<owner>/records", methods=["POST"])
@requires_caller
def add_provider_health_data(caller, owner):
    data = _json()
    record_id = RecordStoreService(get_db_session()).add_provider_health_data(
        caller,
        owner,
        data_type=data.get("data_type"),
        ciphertext=_decode_ciphertext(data),
        checksum=data.get("checksum"),
        external_ref=data.get("external_ref"),
    )
    return jsonify({"ok": True, "record_id": record_id}), 201


@bp.route("/owners/<owner>/records/<int:record_id>", methods=["GET"])
@requires_caller
def get_health_data(caller, owner, record_id):
    record = RecordStoreService(get_db_session()).get_health_data(owner, record_id, caller)
    return jsonify({"ok": True, "record": record.to_dict()})


@bp.route("/owners/<owner>/records/<int:record_id>/emergency", methods=["GET"])
@requires_caller
def emergency_access(caller, owner, record_id):
    record = EmergencyAccessService(get_db_session()).emergency_access(caller, owner, record_id)
    return jsonify({"ok": True, "record": record.to_dict()})


# =============================================================================
# Permissions
# =============================================================================

@bp.route("/permissions", methods=["POST"])
@requires_caller
def grant_access(caller):
    data = _json()
    permission_id = PermissionLedgerService(get_db_session()).grant_access(
        caller,
        accessor=data.get("accessor"),
        data_types=data.get("data_types"),
        expires_at=data.get("expires_at"),
    )
    return jsonify({"ok": True, "permission_id": permission_id}), 201


@bp.route("/permissions/<int:permission_id>/revoke", methods=["POST"])
@requires_caller
def revoke_access(caller, permission_id):
    data = _json()
    PermissionLedgerService(get_db_session()).revoke_access(
        caller, data.get("accessor"), permission_id
    )
    return jsonify({"ok": True})


@bp.route("/owners/<owner>/permissions/<accessor>", methods=["GET"])
@requires_caller
def get_permissions(caller, owner, accessor):
    ids = PermissionLedgerService(get_db_session()).get_permissions(owner, accessor)
    return jsonify({"ok": True, "permission_ids": ids})


@bp.route("/owners/<owner>/permissions/<accessor>/<int:permission_id>", methods=["GET"])
@requires_caller
def get_permission_details(caller, owner, accessor, permission_id):
    permission = PermissionLedgerService(get_db_session()).get_permission_details(
        owner, accessor, permission_id
    )
    return jsonify({"ok": True, "permission": _as_dict(permission)})


@bp.route("/owners/<owner>/authorized", methods=["GET"])
@requires_caller
def is_access_authorized(caller, owner):
    accessor = request.args.get("accessor") or caller
    data_type = request.args.get("data_type", "")
    allowed = AuthorizationEngine(get_db_session()).is_access_authorized(owner, accessor, data_type)
    return jsonify({"ok": True, "authorized": allowed})


# =============================================================================
# Emergency access policy
# =============================================================================

@bp.route("/emergency/contact", methods=["PUT"])
@requires_caller
def set_emergency_contact(caller):
    data = _json()
    EmergencyAccessService(get_db_session()).set_emergency_contact(caller, data.get("contact"))
    return jsonify({"ok": True})


@bp.route("/emergency/enabled", methods=["PUT"])
@requires_caller
def set_emergency_access(caller):
    data = _json()
    EmergencyAccessService(get_db_session()).set_emergency_access(caller, data.get("enabled"))
    return jsonify({"ok": True})


@bp.route("/owners/<owner>/emergency", methods=["GET"])
@requires_caller
def get_emergency_settings(caller, owner):
    settings = EmergencyAccessService(get_db_session()).get_emergency_settings(owner)
    return jsonify({"ok": True, "emergency": settings})


# =============================================================================
# Audit log (owner or admin only)
# =============================================================================

def _require_log_reader(caller: str, owner: str):
    if caller != owner and not RegistryService(get_db_session()).is_admin(caller):
        raise Unauthorized(f"{caller!r} may not read the access log of {owner!r}")


@bp.route("/owners/<owner>/access-logs", methods=["GET"])
@requires_caller
def list_access_logs(caller, owner):
    _require_log_reader(caller, owner)
    entries = AuditLogService(get_db_session()).list_access_logs(owner)
    return jsonify({"ok": True, "entries": [e.to_dict() for e in entries]})


@bp.route("/owners/<owner>/access-logs/<int:log_id>", methods=["GET"])
@requires_caller
def get_access_log(caller, owner, log_id):
    _require_log_reader(caller, owner)
    entry = AuditLogService(get_db_session()).get_access_log(owner, log_id)
    return jsonify({"ok": True, "entry": _as_dict(entry)})


# =============================================================================
# Logical clock
# =============================================================================

@bp.route("/clock", methods=["GET"])
@requires_caller
def get_clock(caller):
    return jsonify({"ok": True, "now": LogicalClockService(get_db_session()).now()})


@bp.route("/clock/advance", methods=["POST"])
@requires_caller
def advance_clock(caller):
    if not RegistryService(get_db_session()).is_admin(caller):
        raise Unauthorized(f"{caller!r} may not advance the clock")
    data = _json()
    now = LogicalClockService(get_db_session()).advance(data.get("ticks", 1))
    return jsonify({"ok": True, "now": now})
