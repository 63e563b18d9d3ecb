import os
from datetime import timedelta

SECRET_KEY = os.getenv("SITETASK_SECRET_KEY", "change-this-in-production-please")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("SITETASK_ACCESS_TOKEN_MINUTES", str(60 * 24 * 7)))

APP_ENV = os.getenv("SITETASK_ENV", "development")
LOG_LEVEL = os.getenv("SITETASK_LOG_LEVEL", "INFO")

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///" + os.path.join(
    os.path.dirname(os.path.dirname(__file__)), "data", "sitetask.db"
))
SQL_ECHO = os.getenv("SITETASK_SQL_ECHO", "0") == "1"

CORS_ORIGINS = [
    o.strip()
    for o in os.getenv("SITETASK_CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000").split(",")
    if o.strip()
]

UPLOAD_DIR = os.getenv("SITETASK_UPLOAD_DIR", os.path.join(os.getcwd(), "uploads"))
MAX_UPLOAD_BYTES = int(os.getenv("SITETASK_MAX_UPLOAD_MB", "10")) * 1024 * 1024

# password given to users created by the spreadsheet import
DEFAULT_IMPORT_PASSWORD = os.getenv("SITETASK_IMPORT_PASSWORD", "defaultPassword123")


def access_token_delta() -> timedelta:
    return timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)


def is_production() -> bool:
    return APP_ENV.lower() == "production"
