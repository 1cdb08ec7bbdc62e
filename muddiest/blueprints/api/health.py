from datetime import datetime, timezone

from . import bp


@bp.get("/health")
def health():
    return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}, 200
