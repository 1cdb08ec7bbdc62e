from flask import jsonify, request

from . import bp
from muddiest.extensions import db
from muddiest.services import analytics as svc_analytics
from muddiest.utils.helpers import safe_int


@bp.get("/analytics/stats")
def analytics_stats():
    return jsonify(svc_analytics.submission_stats(db.session)), 200


@bp.get("/analytics/confusion-patterns")
def analytics_confusion_patterns():
    days = safe_int(request.args.get("days"), 7) or 7
    return jsonify(svc_analytics.confusion_patterns(db.session, days=days)), 200
