import os

class BaseConfig:
    # Secrets (env in prod; dev/test may use defaults)
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-not-secure")
    WTF_CSRF_SECRET_KEY = SECRET_KEY
    WTF_CSRF_TIME_LIMIT = None

    # Keyed into the submitter hash; falls back to SECRET_KEY when unset
    IP_HASH_SECRET = os.environ.get("IP_HASH_SECRET")

    # Database (env in prod; dev/test may use default)
    try:
        from dotenv import dotenv_values
        _ENV_FALLBACK = dotenv_values(".env")
    except Exception:
        _ENV_FALLBACK = {}
    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL") or _ENV_FALLBACK.get("DATABASE_URL") or "sqlite:///muddiest.db"
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Logging / misc
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Cookies: secure-by-default
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"

    # Reverse proxies in front of the app (X-Forwarded-For hops to trust)
    PROXY_FIX_HOPS = int(os.getenv("PROXY_FIX_HOPS", "0"))

    # Used for absolute class links printed by the CLI / QR codes
    APP_BASE_URL = os.getenv("APP_BASE_URL", "http://localhost:5000")

    # --- Anonymous submission admission ---
    SUBMISSION_MAX_PER_SESSION = int(os.getenv("SUBMISSION_MAX_PER_SESSION", "3"))
    SUBMISSION_COOLDOWN_MINUTES = int(os.getenv("SUBMISSION_COOLDOWN_MINUTES", "15"))

    # --- Class sessions (daily links) ---
    SESSION_TIMEZONE = os.getenv("SESSION_TIMEZONE", "UTC")
    SESSION_TOKEN_BYTES = int(os.getenv("SESSION_TOKEN_BYTES", "9"))  # 9 bytes -> 12 url-safe chars
    SUBMISSION_UI_PATH = os.getenv("SUBMISSION_UI_PATH", "/class-session")

    # --- Feature board owner tokens ---
    OWNER_TOKEN_SALT = os.getenv("OWNER_TOKEN_SALT", "owner-token-v1")
    OWNER_TOKEN_MAX_AGE = int(os.getenv("OWNER_TOKEN_MAX_AGE", str(60 * 60 * 24 * 30)))

class DevelopmentConfig(BaseConfig):
    DEBUG = True
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "DEBUG")
    SESSION_COOKIE_SECURE = False

class ProductionConfig(BaseConfig):
    DEBUG = False
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "WARNING")
    # Required at boot; create_app() fails fast when these are missing
    SECRET_KEY = os.environ.get("SECRET_KEY")
    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL")
    IP_HASH_SECRET = os.environ.get("IP_HASH_SECRET")
    SESSION_COOKIE_SECURE = True
    SESSION_COOKIE_SAMESITE = os.environ.get("SESSION_COOKIE_SAMESITE", "Lax")

class TestingConfig(BaseConfig):
    TESTING = True
    DEBUG = True
    WTF_CSRF_ENABLED = False
    RATELIMIT_ENABLED = False
    SQLALCHEMY_DATABASE_URI = os.environ.get("TEST_DATABASE_URL", "sqlite:///:memory:")
    SESSION_COOKIE_SECURE = False
    IP_HASH_SECRET = "test-ip-secret"

_ENV_MAP = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
}

def get_config():
    env = os.environ.get("APP_ENV", "development").lower()
    return _ENV_MAP.get(env, DevelopmentConfig)
