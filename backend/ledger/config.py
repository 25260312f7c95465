import os
from pathlib import Path
from dotenv import load_dotenv

# Load .env from the package directory or the backend directory
env_path = Path(__file__).parent / '.env'
if not env_path.exists():
    env_path = Path(__file__).parent.parent / '.env'
load_dotenv(env_path)


def _flag(name, default="false"):
    return os.environ.get(name, default).strip().lower() in ("1", "true", "yes", "on")


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-production'
    JWT_SECRET_KEY = os.environ.get('JWT_SECRET_KEY') or SECRET_KEY

    MONGO_URI = os.getenv('MONGO_URI', 'mongodb://localhost:27017/expense_ledger')
    MONGO_DB_NAME = os.getenv('MONGO_DB_NAME', 'expense_ledger')

    CORS_ORIGINS = [
        origin.strip()
        for origin in os.getenv('CORS_ORIGINS', 'http://localhost:3000,http://localhost:5173').split(',')
        if origin.strip()
    ]

    MAIL_SERVER = os.environ.get('MAIL_SERVER', 'smtp.gmail.com')
    MAIL_PORT = int(os.environ.get('MAIL_PORT', 587))
    MAIL_USE_TLS = _flag('MAIL_USE_TLS', 'true')
    MAIL_USERNAME = os.environ.get('MAIL_USERNAME')
    MAIL_PASSWORD = os.environ.get('MAIL_PASSWORD')
    MAIL_DEFAULT_SENDER = os.environ.get('MAIL_DEFAULT_SENDER') or MAIL_USERNAME
    # Mail group members when an expense is added to their group
    NOTIFY_BY_MAIL = _flag('NOTIFY_BY_MAIL')

    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    LOG_JSON = _flag('LOG_JSON', 'true')


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = 'test-secret-key'
    JWT_SECRET_KEY = 'test-jwt-secret-key-with-enough-length'
    MAIL_SUPPRESS_SEND = True
    NOTIFY_BY_MAIL = False
    LOG_JSON = False
