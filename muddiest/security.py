from flask_talisman import Talisman

def init_security(app):
    """
    Production/staging headers. Responses are JSON or a redirect into the
    submission UI, so nothing here needs to load scripts, styles or frames.
    """
    csp = {
        "default-src": ["'none'"],
        "frame-ancestors": ["'none'"],
        "base-uri": ["'none'"],
        "form-action": ["'self'"],
    }

    Talisman(
        app,
        content_security_policy=csp,
        force_https=True,
        strict_transport_security=True,
        strict_transport_security_max_age=app.config.get("HSTS_MAX_AGE", 31536000),
        session_cookie_secure=True,
        frame_options="DENY",
        # Class links are shared by QR code; the token must not leak to third parties
        referrer_policy="no-referrer",
    )
