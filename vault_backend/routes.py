"""
OTP VAULT API ROUTES - FLASK BLUEPRINT

All endpoints live under /api and speak JSON.

EXAMPLES:
curl http://localhost:5000/api/secrets
curl -X POST http://localhost:5000/api/secrets -H "Content-Type: application/json" \
     -d '{"name": "GitHub", "account": "alice", "secret": "JBSWY3DPEHPK3PXP"}'
curl http://localhost:5000/api/secrets/1/code
curl -X POST http://localhost:5000/api/import -H "Content-Type: application/json" \
     -d '{"text": "otpauth://totp/GitHub:alice?secret=JBSWY3DPEHPK3PXP"}'
"""

import base64
import io
import logging
import time

import qrcode
from flask import Blueprint, Response, abort, current_app, jsonify, request

from vault_core import base32, interchange, keys, otpauth
from vault_core.credential import OTPKind
from vault_core.errors import CredentialError
from vault_core.otp_core import FixedClock, generate_for, progress, remaining_seconds
from vault_database import db_manager

logger = logging.getLogger(__name__)

api_bp = Blueprint("api", __name__, url_prefix="/api")

_EXPORT_MIMETYPES = {
    "txt": "text/plain",
    "json": "application/json",
    "csv": "text/csv",
    "migration": "text/plain",
}


def _db() -> str:
    return current_app.config["DATABASE"]


def _clock():
    return current_app.config.get("CLOCK", time.time)


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise CredentialError("JSON object body is required")
    return data


def _stored_or_404(credential_id: int):
    stored = db_manager.get_credential(credential_id, _db())
    if stored is None:
        abort(404)
    return stored


def _credential_from_body(data: dict):
    credential = interchange.credential_from_dict(data)
    if credential is None:
        raise CredentialError("secret is required")
    return credential


def render_qr_png(text: str) -> bytes:
    """Render text as a PNG QR code."""
    qr = qrcode.QRCode(
        box_size=current_app.config["QR_BOX_SIZE"],
        border=current_app.config["QR_BORDER"],
        error_correction=qrcode.constants.ERROR_CORRECT_M,
    )
    qr.add_data(text)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")
    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    return buffer.getvalue()


def _qr_data_url(text: str) -> str:
    img_str = base64.b64encode(render_qr_png(text)).decode("ascii")
    return f"data:image/png;base64,{img_str}"


# --- Credentials -----------------------------------------------------------
@api_bp.route("/secrets", methods=["GET"])
def list_secrets():
    stored = db_manager.list_credentials(_db())
    return jsonify({"secrets": [s.to_dict() for s in stored]})


@api_bp.route("/secrets", methods=["POST"])
def add_secret():
    """
    ADD ONE CREDENTIAL

    Body: {"name", "account", "secret", "type", "digits", "period", "algorithm", "counter"}
    """
    credential = _credential_from_body(_json_body())
    new_id = db_manager.add_credential(credential, _db())
    stored = db_manager.get_credential(new_id, _db())
    return jsonify({"success": True, "secret": stored.to_dict()}), 201


@api_bp.route("/secrets/<int:credential_id>", methods=["PUT"])
def update_secret(credential_id):
    stored = _stored_or_404(credential_id)
    merged = stored.credential.to_dict()
    merged.update({k: v for k, v in _json_body().items() if k != "id"})
    credential = _credential_from_body(merged)
    db_manager.update_credential(credential_id, credential, _db())
    return jsonify({"success": True})


@api_bp.route("/secrets/<int:credential_id>", methods=["DELETE"])
def delete_secret(credential_id):
    if not db_manager.delete_credential(credential_id, _db()):
        abort(404)
    return jsonify({"success": True})


@api_bp.route("/secrets/batch", methods=["POST"])
def batch_add_secrets():
    """
    ADD MANY CREDENTIALS

    Body: {"secrets": [{...}, ...]}
    Items without a usable secret are skipped; "added" counts stored rows.
    """
    items = _json_body().get("secrets")
    if not isinstance(items, list):
        raise CredentialError("'secrets' must be a list")

    credentials = []
    skipped = 0
    for item in items:
        try:
            credential = interchange.credential_from_dict(item) if isinstance(item, dict) else None
        except CredentialError as e:
            logger.info("Skipping batch item: %s", e)
            credential = None
        if credential is None:
            skipped += 1
            continue
        credentials.append(credential)

    added = db_manager.batch_add(credentials, _db())
    return jsonify({"success": True, "added": added, "skipped": skipped})


@api_bp.route("/secrets/<int:credential_id>/code", methods=["GET"])
def get_code(credential_id):
    """
    CURRENT CODE FOR A CREDENTIAL

    TOTP: {"code", "remaining", "progress", "period"}
    HOTP: {"code", "counter"}
    """
    credential = _stored_or_404(credential_id).credential
    if credential.kind is OTPKind.HOTP:
        return jsonify({"code": generate_for(credential), "counter": credential.counter})
    # Code and countdown must come from the same instant
    now = _clock()()
    code = generate_for(credential, FixedClock(now))
    return jsonify({
        "code": code,
        "remaining": remaining_seconds(credential.period, now),
        "progress": progress(credential.period, now),
        "period": credential.period,
    })


@api_bp.route("/secrets/<int:credential_id>/next", methods=["POST"])
def next_hotp_code(credential_id):
    """Advance a HOTP counter and return the code for the new value."""
    if _stored_or_404(credential_id).credential.kind is not OTPKind.HOTP:
        raise CredentialError("only HOTP credentials have a counter")
    stored = db_manager.increment_counter(credential_id, _db())
    code = generate_for(stored.credential, _clock())
    return jsonify({"code": code, "counter": stored.credential.counter})


@api_bp.route("/secrets/<int:credential_id>/uri", methods=["GET"])
def get_uri(credential_id):
    credential = _stored_or_404(credential_id).credential
    return jsonify({"uri": otpauth.serialize(credential)})


@api_bp.route("/secrets/<int:credential_id>/qr", methods=["GET"])
def get_qr(credential_id):
    uri = otpauth.serialize(_stored_or_404(credential_id).credential)
    return jsonify({"qr_code": _qr_data_url(uri), "uri": uri})


# --- Import / export -------------------------------------------------------
@api_bp.route("/parse", methods=["POST"])
def parse_text():
    """Preview what /import would store, without storing anything."""
    result = interchange.parse_text(str(_json_body().get("text", "")))
    return jsonify({
        "secrets": [c.to_dict() for c in result.credentials],
        "errors": result.errors,
    })


@api_bp.route("/import", methods=["POST"])
def import_text():
    """
    IMPORT PASTED TEXT

    Body: {"text": "otpauth://... lines, otpauth-migration://... or JSON"}
    """
    result = interchange.parse_text(str(_json_body().get("text", "")))
    added = db_manager.batch_add(result.credentials, _db())
    return jsonify({"success": True, "added": added, "errors": result.errors})


@api_bp.route("/export", methods=["GET"])
def export():
    fmt = request.args.get("format", "txt")
    exporter = interchange.EXPORTERS.get(fmt)
    if exporter is None:
        raise CredentialError(f"unknown export format {fmt!r}")
    credentials = [s.credential for s in db_manager.list_credentials(_db())]
    return Response(exporter(credentials), mimetype=_EXPORT_MIMETYPES[fmt])


# --- Backups ---------------------------------------------------------------
@api_bp.route("/backup", methods=["GET"])
def list_backups():
    return jsonify({"backups": db_manager.list_backups(_db())})


@api_bp.route("/backup", methods=["POST"])
def create_backup():
    backup = db_manager.create_backup(_db())
    return jsonify({"success": True, "backup": backup}), 201


@api_bp.route("/backup/restore", methods=["POST"])
def restore_backup():
    key = _json_body().get("backupKey")
    if not key:
        raise CredentialError("backupKey is required")
    restored = db_manager.restore_backup(key, _db())
    if restored is None:
        abort(404)
    return jsonify({"success": True, "restored": restored})


# --- Tools -----------------------------------------------------------------
@api_bp.route("/tools/base32", methods=["POST"])
def base32_tool():
    """
    Body: {"mode": "encode", "text": "hello"}  -> {"result": "NBSWY3DP"}
          {"mode": "decode", "text": "NBSWY3DP"} -> {"result": "hello"}
    """
    data = _json_body()
    text = str(data.get("text", ""))
    mode = data.get("mode", "encode")
    if mode == "encode":
        return jsonify({"result": base32.encode(text.encode("utf-8"))})
    if mode == "decode":
        raw = base32.decode(base32.normalize_secret(text))
        return jsonify({"result": raw.decode("utf-8", errors="replace"), "hex": raw.hex()})
    raise CredentialError(f"unknown mode {mode!r}")


@api_bp.route("/tools/check-secret", methods=["POST"])
def check_secret():
    report = keys.check_secret(str(_json_body().get("secret", "")))
    return jsonify({
        "valid": report.valid,
        "normalized": report.normalized,
        "bytes": report.byte_length,
        "bits": report.bit_length,
        "message": report.message,
    })


@api_bp.route("/tools/generate-secret", methods=["GET"])
def generate_secret():
    length = request.args.get("length", default=keys.MIN_SECRET_LENGTH, type=int)
    try:
        secret = keys.generate_secret(length)
    except ValueError as e:
        raise CredentialError(str(e)) from e
    return jsonify({"secret": secret, "issuer": current_app.config["DEFAULT_ISSUER"]})


@api_bp.route("/tools/timestamp", methods=["GET"])
def timestamp_tool():
    period = request.args.get("period", default=30, type=int)
    if period <= 0:
        raise CredentialError("period must be positive")
    info = keys.step_info(_clock()(), period)
    return jsonify({
        "timestamp": info.timestamp,
        "period": info.period,
        "counter": info.counter,
        "counterHex": info.counter_hex,
        "remaining": info.remaining,
        "progress": info.progress,
    })


@api_bp.route("/tools/qr", methods=["POST"])
def qr_tool():
    text = str(_json_body().get("text", ""))
    if not text:
        raise CredentialError("text is required")
    return jsonify({"qr_code": _qr_data_url(text)})
