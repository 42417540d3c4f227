import os

from dotenv import load_dotenv

load_dotenv()


class Config:
    """Base configuration class"""

    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key-change-in-production")
    FLASK_ENV = os.getenv("FLASK_ENV", "development")
    DEBUG = os.getenv("DEBUG", "True") == "True"

    # SQLAlchemy configuration
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URI", "sqlite:///streakline.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Session security
    SESSION_COOKIE_HTTPONLY = True  # Prevent JavaScript access to session cookie
    SESSION_COOKIE_SAMESITE = "Lax"  # Protect against CSRF (development default)

    if os.getenv("SESSION_COOKIE_SAMESITE"):
        SESSION_COOKIE_SAMESITE = os.getenv("SESSION_COOKIE_SAMESITE")

    # Minimum score (0-100) for a submission to count as a completion
    PASSING_SCORE_THRESHOLD = int(os.getenv("PASSING_SCORE_THRESHOLD", "70"))

    # Rolling history caps
    CONFIDENCE_HISTORY_LIMIT = int(os.getenv("CONFIDENCE_HISTORY_LIMIT", "20"))
    PRONUNCIATION_HISTORY_LIMIT = int(os.getenv("PRONUNCIATION_HISTORY_LIMIT", "50"))

    # Skip pronunciation rescans requested within this window of the last one
    PRONUNCIATION_REFRESH_DEBOUNCE_SECONDS = int(
        os.getenv("PRONUNCIATION_REFRESH_DEBOUNCE_SECONDS", "30")
    )


class DevelopmentConfig(Config):
    """Development environment configuration"""

    DEBUG = True
    SESSION_COOKIE_SECURE = False  # Allow HTTP in development


class ProductionConfig(Config):
    """Production environment configuration"""

    DEBUG = False
    SESSION_COOKIE_SECURE = True  # Require HTTPS in production

    # Cross-domain frontends need SameSite=None together with Secure=True
    SESSION_COOKIE_SAMESITE = os.getenv("SESSION_COOKIE_SAMESITE", "None")

    REMEMBER_COOKIE_HTTPONLY = True
    REMEMBER_COOKIE_SECURE = True
    REMEMBER_COOKIE_SAMESITE = os.getenv("SESSION_COOKIE_SAMESITE", "None")
    REMEMBER_COOKIE_DURATION = 2592000  # 30 days in seconds
    REMEMBER_COOKIE_PATH = "/"

    SESSION_COOKIE_PATH = "/"

    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_size": 20,
        "max_overflow": 10,
        "pool_recycle": 3600,
        "pool_pre_ping": True,
    }


class TestingConfig(Config):
    """Testing environment configuration"""

    TESTING = True
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SESSION_COOKIE_SECURE = False
    PRONUNCIATION_REFRESH_DEBOUNCE_SECONDS = 0


config = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
    "default": DevelopmentConfig,
}
