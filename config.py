import os
import yaml

ROOT_PATH = os.path.dirname(__file__)
CONFIG_FILE_PATH = os.path.join(ROOT_PATH, "env.yaml")

if os.path.exists(CONFIG_FILE_PATH):
    with open(CONFIG_FILE_PATH, "r") as r_file:
        data = yaml.safe_load(r_file) or dict()
else:
    data = dict()


def _secret(name: str):
    # Secrets may live in env.yaml or the process environment, never in code
    return data.get(name, os.environ.get(name))


class ApplicationConfig:
    ENVIRONMENT = data.get("ENVIRONMENT", os.environ.get("ENVIRONMENT", "development"))
    DB_URI = data.get("DB_URI", "sqlite+aiosqlite:///./haven.db")
    API_PREFIX = data.get("API_PREFIX", "/api")
    API_PORT = data.get("API_PORT", 8000)
    API_HOST = data.get("API_HOST", "0.0.0.0")
    CORS_ORIGINS = data.get("CORS_ORIGINS", [])
    CORS_ALLOW_CREDENTIALS = data.get("CORS_ALLOW_CREDENTIALS", True)
    LOG_LEVEL = data.get("LOG_LEVEL", "INFO")
    ENABLE_LOGGING_MIDDLEWARE = bool(data.get("ENABLE_LOGGING_MIDDLEWARE", 1))

    # Token signing
    JWT_SECRET = _secret("JWT_SECRET")
    JWT_REFRESH_SECRET = _secret("JWT_REFRESH_SECRET")
    JWT_ISSUER = data.get("JWT_ISSUER", "havenhub.app")
    JWT_AUDIENCE = data.get("JWT_AUDIENCE", "havenhub-api")
    ACCESS_TOKEN_TTL_MINUTES = data.get("ACCESS_TOKEN_TTL_MINUTES", 15)
    REFRESH_TOKEN_TTL_DAYS = data.get("REFRESH_TOKEN_TTL_DAYS", 7)
    MFA_CHALLENGE_TTL_MINUTES = data.get("MFA_CHALLENGE_TTL_MINUTES", 5)

    # Billing collaborator (service-to-service)
    ADMIN_API_KEY = _secret("ADMIN_API_KEY")

    # Brute-force protection
    LOCKOUT_MAX_ATTEMPTS = data.get("LOCKOUT_MAX_ATTEMPTS", 5)
    LOCKOUT_DURATION_MINUTES = data.get("LOCKOUT_DURATION_MINUTES", 30)
    LOCKOUT_ATTEMPT_WINDOW_MINUTES = data.get("LOCKOUT_ATTEMPT_WINDOW_MINUTES", 30)
    AUTH_RATE_LIMIT_ATTEMPTS = data.get("AUTH_RATE_LIMIT_ATTEMPTS", 5)
    AUTH_RATE_LIMIT_WINDOW_MINUTES = data.get("AUTH_RATE_LIMIT_WINDOW_MINUTES", 15)
    MFA_RATE_LIMIT_ATTEMPTS = data.get("MFA_RATE_LIMIT_ATTEMPTS", 5)
    MFA_RATE_LIMIT_WINDOW_MINUTES = data.get("MFA_RATE_LIMIT_WINDOW_MINUTES", 15)

    # Platform operators
    PLATFORM_ADMIN_IP_ALLOWLIST = data.get(
        "PLATFORM_ADMIN_IP_ALLOWLIST", ["127.0.0.1/32", "::1/128"]
    )

    # Cookies and identity providers
    COOKIE_SECURE = bool(data.get("COOKIE_SECURE", ENVIRONMENT == "production"))
    IDP_TIMEOUT_SECONDS = data.get("IDP_TIMEOUT_SECONDS", 10)
    OAUTH_PROVIDERS = data.get("OAUTH_PROVIDERS", {})

    TRIAL_DAYS = data.get("TRIAL_DAYS", 14)
