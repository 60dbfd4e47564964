import os
from dotenv import load_dotenv

load_dotenv() # read variables from a local .env file


def _flag(name, default=""):
    return str(os.getenv(name, default)).strip().lower() in ("1", "true", "yes", "on")


def _build_database_uri():
    db_host = os.getenv('DB_HOST')
    db_user = os.getenv('DB_USER')
    db_password = os.getenv('DB_PASSWORD')
    db_name = os.getenv('DB_NAME')

    # MySQL connection string (PyMySQL driver) when the DB_* variables are set
    if db_host and db_name:
        if not db_password:
            return f"mysql+pymysql://{db_user}@{db_host}/{db_name}"
        return f"mysql+pymysql://{db_user}:{db_password}@{db_host}/{db_name}"

    return os.getenv('DATABASE_URL', 'sqlite:///recruit.db')


class Config:
    SECRET_KEY = os.getenv('SESSION_SECRET') or os.getenv('SECRET_KEY', 'dev_secret_change_me')
    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY') or SECRET_KEY

    # signed cookie session
    SESSION_COOKIE_NAME = 'rp.sid'
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'
    SESSION_COOKIE_SECURE = False
    PERMANENT_SESSION_LIFETIME = 7 * 24 * 3600

    MAX_CONTENT_LENGTH = 20 * 1024 * 1024

    # local JSON document and uploads; skipped when the disk is ephemeral
    DATA_PATH = os.getenv('DATA_PATH', os.path.join(os.getcwd(), 'data.json'))
    UPLOAD_FOLDER = os.getenv('UPLOAD_FOLDER', os.path.join(os.getcwd(), 'uploads'))
    EPHEMERAL_STORAGE = _flag('EPHEMERAL_STORAGE') or bool(os.getenv('VERCEL'))

    # remote mirror of the record store
    REMOTE_STORE_ENABLED = _flag('REMOTE_STORE_ENABLED')
    DB_HOST = os.getenv('DB_HOST')
    DB_USER = os.getenv('DB_USER')
    DB_PASSWORD = os.getenv('DB_PASSWORD')
    DB_NAME = os.getenv('DB_NAME')
    SQLALCHEMY_DATABASE_URI = _build_database_uri()
    SQLALCHEMY_TRACK_MODIFICATIONS = False  # disables overhead warning

    # resume bucket (S3 compatible)
    RESUME_BUCKET = os.getenv('RESUME_BUCKET', '').strip()
    S3_ENDPOINT_URL = os.getenv('S3_ENDPOINT_URL') or None
    S3_REGION = os.getenv('AWS_REGION') or os.getenv('AWS_DEFAULT_REGION') or None
    SIGNED_URL_EXPIRES = int(os.getenv('SIGNED_URL_EXPIRES', '3600') or 3600)

    # Feishu / Lark open platform
    FEISHU_HOST = os.getenv('FEISHU_HOST', 'https://open.feishu.cn')
    FEISHU_APP_ID = os.getenv('FEISHU_APP_ID', '')
    FEISHU_APP_SECRET = os.getenv('FEISHU_APP_SECRET', '')
    FEISHU_REDIRECT_URI = os.getenv('FEISHU_REDIRECT_URI', '')
    FEISHU_APPROVAL_CODE = os.getenv('FEISHU_APPROVAL_CODE', '')
    NOTIFY_ASYNC = True

    ADMIN_USERS = [x.strip() for x in os.getenv('ADMIN_USERS', '').split(',') if x.strip()]

    CORS_ORIGINS = os.getenv('CORS_ORIGINS', 'http://localhost:3000')
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO').upper()


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = 'test-session-secret-0123456789abcdef'
    JWT_SECRET_KEY = 'test-jwt-secret-0123456789abcdef0123'
    EPHEMERAL_STORAGE = False
    REMOTE_STORE_ENABLED = False
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    RESUME_BUCKET = ''
    FEISHU_APP_ID = ''
    FEISHU_APP_SECRET = ''
    FEISHU_APPROVAL_CODE = ''
    NOTIFY_ASYNC = False
    ADMIN_USERS = ['Admin']
