from fastapi import Depends
from sqlalchemy.orm import Session

from . import config
from .models import db as models_db
from .auth.storage import AuthStore, JsonFileStore
from .auth.sql_storage import SqlAlchemyStore


def get_db():
    db = models_db.SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_auth_store(db: Session = Depends(get_db)) -> AuthStore:
    """Store selected by AUTH_STORE_BACKEND."""
    if config.AUTH_STORE_BACKEND == "sql":
        return SqlAlchemyStore(db)
    return JsonFileStore(config.AUTH_DB_PATH)


def get_job_storage_path():
    return config.JOB_STORAGE_PATH


def get_application_storage_path():
    return config.APPLICATION_STORAGE_PATH
