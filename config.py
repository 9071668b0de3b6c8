import os

BASE_DIR = os.path.abspath(os.path.dirname(__file__))

class Config:
    # Secrets
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-only-change-me")
    JWT_SECRET = os.getenv("JWT_SECRET")
    JWT_ISSUER = os.getenv("JWT_ISSUER", "satsblox-api")

    # 64 hex chars (32 bytes). Generate with: flask generate-encryption-key
    ENCRYPTION_KEY = os.getenv("ENCRYPTION_KEY")

    # SQLite database file stored next to the app as satsblox.db
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL",
        "sqlite:///" + os.path.join(BASE_DIR, "satsblox.db")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Upper bound on how long a request waits on the database
    DB_TIMEOUT_SECONDS = int(os.getenv("DB_TIMEOUT_SECONDS", "5"))

    # Token lifetimes: 7 minutes / 7 days
    ACCESS_TOKEN_TTL_SECONDS = int(os.getenv("ACCESS_TOKEN_TTL_SECONDS", str(7 * 60)))
    REFRESH_TOKEN_TTL_SECONDS = int(os.getenv("REFRESH_TOKEN_TTL_SECONDS", str(7 * 24 * 60 * 60)))

    # Account-level lockout (persisted, authoritative)
    MAX_LOGIN_ATTEMPTS = 5
    LOCKOUT_MINUTES = 15

    # Per-origin brute-force guard (in memory)
    LOGIN_RATE_WINDOW_SECONDS = 15 * 60
    LOGIN_RATE_MAX_ATTEMPTS = 5
    LOGIN_RATE_LOCKOUT_SECONDS = 15 * 60
    LOGIN_RATE_SHARDS = 16
    # Reverse proxies in front of the app; 0 means remote_addr is the client
    TRUSTED_PROXY_COUNT = int(os.getenv("TRUSTED_PROXY_COUNT", "0"))
    RATE_LIMIT_SWEEP_SECONDS = 10 * 60
    RATE_LIMIT_SWEEPER_ENABLED = True

    # Password hashing / policy
    BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))
    PASSWORD_MIN_LEN = 8
    PASSWORD_MAX_LEN = 72  # bcrypt only looks at the first 72 bytes
    PASSWORD_REQUIRE_UPPER = False
    PASSWORD_REQUIRE_LOWER = False
    PASSWORD_REQUIRE_DIGIT = False
    PASSWORD_REQUIRE_SYMBOL = False

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Basic app settings
    DEBUG = False


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    JWT_SECRET = "test-jwt-secret-not-for-production-use-only"
    ENCRYPTION_KEY = "00112233445566778899aabbccddeeff00112233445566778899aabbccddeeff"
    BCRYPT_ROUNDS = 4
    RATE_LIMIT_SWEEPER_ENABLED = False
    LOG_LEVEL = "DEBUG"
