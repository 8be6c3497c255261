"""Configuration settings for the Rakamin backend."""
import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables from project root
project_root = Path(__file__).resolve().parent.parent.parent
env_path = project_root / ".env"
load_dotenv(env_path)
load_dotenv()  # Fallback: try loading from current working directory

# "development", "test" or "production"
APP_ENV = os.getenv("APP_ENV", "development").lower()
IS_PRODUCTION = APP_ENV == "production"
IS_DEVELOPMENT = APP_ENV == "development"

# Secret key for signing session tokens (empty means the dev placeholder is used)
AUTH_SECRET = os.getenv("AUTH_SECRET") or os.getenv("JWT_SECRET") or ""

# Auth store: "file" keeps users and magic links in a single JSON document,
# "sql" uses the SQLAlchemy models
AUTH_STORE_BACKEND = os.getenv("AUTH_STORE_BACKEND", "file").lower()
AUTH_DB_PATH = Path(os.getenv("AUTH_DB_PATH", "db.json"))
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./auth.db")

# Job postings document
JOB_STORAGE_PATH = Path(os.getenv("JOB_STORAGE_PATH", "jobs.json"))

# Submitted applications (a JSON list)
APPLICATION_STORAGE_PATH = Path(os.getenv("APPLICATION_STORAGE_PATH", "applications.json"))

# SMTP settings for sending emails (all of host/port/user/password are required,
# otherwise messages are only logged)
SMTP_HOST = os.getenv("SMTP_HOST", "")
SMTP_PORT = int(os.getenv("SMTP_PORT") or "0")
SMTP_USER = os.getenv("SMTP_USER", "")
SMTP_PASSWORD = os.getenv("SMTP_PASSWORD") or os.getenv("SMTP_PASS", "")
SMTP_USE_TLS = os.getenv("SMTP_USE_TLS", "true").lower() == "true"
SMTP_FROM_EMAIL = os.getenv("SMTP_FROM_EMAIL", "Rakamin <no-reply@rakamin.com>")
SMTP_TIMEOUT_SECONDS = float(os.getenv("SMTP_TIMEOUT_SECONDS", "10"))

# Allowed CORS origins, comma separated
CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000").split(",")
    if origin.strip()
]


def check_production_settings() -> None:
    """Refuse to run a production build with the development signing secret."""
    if IS_PRODUCTION and not AUTH_SECRET:
        raise RuntimeError("AUTH_SECRET must be set when APP_ENV=production")
