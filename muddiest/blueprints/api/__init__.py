from flask import Blueprint, current_app, jsonify
from werkzeug.exceptions import HTTPException

from muddiest.extensions import db
from muddiest.services.errors import ServiceError, AdmissionDenied

bp = Blueprint("api", __name__)


@bp.errorhandler(ServiceError)
def _service_error(e: ServiceError):
    db.session.rollback()
    resp = jsonify(e.to_payload())
    if isinstance(e, AdmissionDenied) and e.retry_after_minutes is not None:
        resp.headers["Retry-After"] = str(e.retry_after_minutes * 60)
    return resp, e.status_code


@bp.errorhandler(Exception)
def _unexpected(e: Exception):
    if isinstance(e, HTTPException):
        return e
    db.session.rollback()
    current_app.logger.exception("API request failed")
    return jsonify({"error": "server_error"}), 500


# Import submodules so their @bp routes register
from . import health  # noqa: E402,F401
from . import courses  # noqa: E402,F401
from . import submissions  # noqa: E402,F401
from . import analytics  # noqa: E402,F401
from . import user_stories  # noqa: E402,F401
