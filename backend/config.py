import os
from pathlib import Path

from dotenv import load_dotenv

ROOT_DIR = Path(__file__).parent
load_dotenv(ROOT_DIR / ".env")


def _env_str(name: str, default: str = "") -> str:
    raw = (os.environ.get(name) or "").strip()
    return raw or default


MONGO_URL = _env_str("MONGO_URL", "mongodb://localhost:27017")
DB_NAME = _env_str("DB_NAME", "StudyHubA12")

JWT_SECRET = os.environ["JWT_SECRET"]
ACCESS_TOKEN_DAYS = int(os.environ.get("ACCESS_TOKEN_DAYS", "7"))
APP_ENV = _env_str("APP_ENV", "development").lower()
IS_PRODUCTION = APP_ENV == "production"

STRIPE_SECRET_KEY = _env_str("STRIPE_SECRET_KEY")
STRIPE_CURRENCY = _env_str("STRIPE_CURRENCY", "usd").lower()
STRIPE_TIMEOUT_SECONDS = float(os.environ.get("STRIPE_TIMEOUT_SECONDS", "20"))

OPENROUTER_API_KEY = _env_str("OPENROUTER_API_KEY")
CHATBOT_MODEL = _env_str("CHATBOT_MODEL", "deepseek/deepseek-r1")
CHATBOT_BASE_URL = _env_str("CHATBOT_BASE_URL", "https://openrouter.ai/api/v1").rstrip("/")
CHATBOT_MAX_TOKENS = int(os.environ.get("CHATBOT_MAX_TOKENS", "200"))
CHATBOT_TIMEOUT_SECONDS = float(os.environ.get("CHATBOT_TIMEOUT_SECONDS", "30"))
CHATBOT_SITE_URL = _env_str("CHATBOT_SITE_URL", "https://resilient-vacherin-ecfaf3.netlify.app/")
CHATBOT_SITE_TITLE = _env_str("CHATBOT_SITE_TITLE", "StudyHub - Collaborative Study Platform")

CORS_ORIGINS = [
    origin.strip()
    for origin in _env_str("CORS_ORIGINS", "http://localhost:5173").split(",")
    if origin.strip()
]
PORT = int(os.environ.get("PORT", "5000"))
LOG_LEVEL = _env_str("LOG_LEVEL", "INFO").upper()

USER_ROLE_OPTIONS = {"student", "tutor", "admin"}
DEFAULT_USER_ROLE = "student"
# Admins are created by scripts/seed_admin.py or promoted through /admin.
SELF_SERVICE_ROLES = {"student", "tutor"}
