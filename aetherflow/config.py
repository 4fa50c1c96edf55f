import os
from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./aetherflow.db")

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-change-me")
ALGORITHM = os.getenv("ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))

DEFAULT_WORKDAY_START = os.getenv("DEFAULT_WORKDAY_START", "09:00")
DEFAULT_WORKDAY_END = os.getenv("DEFAULT_WORKDAY_END", "17:00")
DEFAULT_TIMEZONE = os.getenv("DEFAULT_TIMEZONE", "UTC")

CELERY_BROKER_URL = os.getenv("CELERY_BROKER_URL", "redis://localhost:6379/0")
CELERY_RESULT_BACKEND = os.getenv("CELERY_RESULT_BACKEND", "redis://localhost:6379/0")
COMPACTION_INTERVAL_MINUTES = int(os.getenv("COMPACTION_INTERVAL_MINUTES", "15"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
