import os
import warnings
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(dotenv_path=Path(__file__).resolve().parent.parent / ".env")

APP_NAME = os.getenv("APP_NAME", "Home Service Marketplace")
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./homeservice.db")

SECRET_KEY = os.getenv("SECRET_KEY")
if not SECRET_KEY:
    warnings.warn("SECRET_KEY is not set; tokens are signed with a development key", RuntimeWarning, stacklevel=2)
    SECRET_KEY = "homeservice-dev-only-signing-key"  # noqa: S105

# Token lifetimes
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(60 * 24)))
REFRESH_TOKEN_EXPIRE_DAYS = int(os.getenv("REFRESH_TOKEN_EXPIRE_DAYS", "7"))
PASSWORD_RESET_EXPIRE_MINUTES = int(os.getenv("PASSWORD_RESET_EXPIRE_MINUTES", "60"))
EMAIL_VERIFICATION_EXPIRE_HOURS = int(os.getenv("EMAIL_VERIFICATION_EXPIRE_HOURS", "24"))

# Login is refused for unverified emails only when this is on
ENFORCE_EMAIL_VERIFICATION = os.getenv("ENFORCE_EMAIL_VERIFICATION", "false").lower() == "true"

# Base for links in mail and redirects
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")

RESEND_API_KEY = os.getenv("RESEND_API_KEY")
EMAIL_FROM_ADDRESS = os.getenv("EMAIL_FROM_ADDRESS", f"{APP_NAME} <noreply@homeservice.com>")
