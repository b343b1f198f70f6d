# File location: src/portal/config/settings.py
import os
import logging
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# Load environment variables from .env file
load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


# ─── Database ──────────────────────────────────────────────────
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./portal.db")
SQL_ECHO = _env_bool("SQL_ECHO", False)

# ─── Auth ──────────────────────────────────────────────────────
SECRET_KEY = os.getenv("SECRET_KEY", "change-me-in-production")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "1440"))

# ─── Frontend / CORS ───────────────────────────────────────────
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000").rstrip("/")
VERIFICATION_DISPLAY_URL = os.getenv("VERIFICATION_DISPLAY_URL", FRONTEND_URL.split("://", 1)[-1])
CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", f"{FRONTEND_URL},http://localhost:3000").split(",")
    if origin.strip()
]

# ─── Business policy ───────────────────────────────────────────
APP_TIMEZONE = os.getenv("APP_TIMEZONE", "Asia/Kolkata")
CURRENCY = os.getenv("CURRENCY", "INR")
# Orders may only be created for applications an admin has moved to Selected
REQUIRE_SELECTED_FOR_PAYMENT = _env_bool("REQUIRE_SELECTED_FOR_PAYMENT", True)

# ─── Documents ─────────────────────────────────────────────────
PDF_RENDER_TIMEOUT_SECONDS = float(os.getenv("PDF_RENDER_TIMEOUT_SECONDS", "60"))
DOCUMENT_STORAGE_BACKEND = os.getenv("DOCUMENT_STORAGE_BACKEND", "cloudinary").lower()
VERIFICATION_ID_PREFIX = os.getenv("VERIFICATION_ID_PREFIX", "COS")
LMS_CERTIFICATE_PREFIX = os.getenv("LMS_CERTIFICATE_PREFIX", "CO-LMS")
SIGNATORY_NAME = os.getenv("SIGNATORY_NAME", "Program Director")
SIGNATORY_TITLE = os.getenv("SIGNATORY_TITLE", "Head of Internships")
# File name under templates/assets; unset prints the signatory block without an image
SIGNATURE_IMAGE = os.getenv("SIGNATURE_IMAGE", "")
ORGANIZATION_NAME = os.getenv("ORGANIZATION_NAME", "Internship Portal")

if DOCUMENT_STORAGE_BACKEND not in ("cloudinary", "s3"):
    logger.error(
        f"Unknown DOCUMENT_STORAGE_BACKEND '{DOCUMENT_STORAGE_BACKEND}', falling back to cloudinary"
    )
    DOCUMENT_STORAGE_BACKEND = "cloudinary"
