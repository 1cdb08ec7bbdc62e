from functools import wraps
from flask import current_app, g, request
from muddiest.services import tokens
from muddiest.services.errors import AuthorizationDenied

OWNER_HEADER = "X-Owner-Token"

def current_owner():
    """Label of the verified owner token on this request, or None."""
    max_age = int(current_app.config.get("OWNER_TOKEN_MAX_AGE", 60 * 60 * 24 * 30))
    return tokens.verify(tokens.KIND_OWNER, request.headers.get(OWNER_HEADER, ""), max_age)

def require_owner(fn):
    """Owner-only actions: a signed owner token, never a client-asserted flag."""
    @wraps(fn)
    def _wrap(*args, **kwargs):
        owner = current_owner()
        if not owner:
            # Formatted by the API blueprint's ServiceError handler
            raise AuthorizationDenied("Owner token missing, invalid or expired")
        g.owner = owner
        return fn(*args, **kwargs)
    return _wrap
