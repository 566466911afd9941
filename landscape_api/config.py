import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

# "development" or "production" - switches database name and sender identity
APP_ENV = os.getenv("APP_ENV", "development")

DATABASE_NAME = os.getenv(
    "DATABASE_NAME", "landscape-labor" if APP_ENV == "production" else "landscape-labor-dev"
)
DATABASE_URL = os.getenv("DATABASE_URL") or f"sqlite:///./{DATABASE_NAME}.db"

BUSINESS_NAME = os.getenv("BUSINESS_NAME", "Landscape Labor Co.")

# Frontend base URL for links in emails
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")

ALLOWED_ORIGINS = os.getenv(
    "ALLOWED_ORIGINS", "http://localhost:5173,http://localhost:5174,http://localhost:3000"
).split(",")

# Resend Email Configuration - email is disabled when the key is missing
RESEND_API_KEY = os.getenv("RESEND_API_KEY")
EMAIL_FROM_ADDRESS = os.getenv(
    "EMAIL_FROM_ADDRESS",
    f"{BUSINESS_NAME} <bookings@landscapelabor.com>"
    if APP_ENV == "production"
    else f"{BUSINESS_NAME} (dev) <onboarding@resend.dev>",
)
BUSINESS_NOTIFICATION_EMAIL = os.getenv("BUSINESS_NOTIFICATION_EMAIL")
REVIEW_URL = os.getenv("REVIEW_URL", f"{FRONTEND_URL}/reviews")

# Square Configuration - payments are disabled when the access token is missing
SQUARE_ENVIRONMENT = os.getenv("SQUARE_ENVIRONMENT", "sandbox")  # sandbox or production
SQUARE_ACCESS_TOKEN = os.getenv("SQUARE_ACCESS_TOKEN")
SQUARE_LOCATION_ID = os.getenv("SQUARE_LOCATION_ID")
SQUARE_API_VERSION = os.getenv("SQUARE_API_VERSION", "2024-12-18")
PAYMENT_CURRENCY = os.getenv("PAYMENT_CURRENCY", "USD")

# Deposit assumed when a booking carries no deposit amount
DEFAULT_DEPOSIT_AMOUNT = float(os.getenv("DEFAULT_DEPOSIT_AMOUNT", "80"))

# Redis response cache - disabled when REDIS_URL is not set
REDIS_URL = os.getenv("REDIS_URL")
AVAILABILITY_CACHE_TTL = int(os.getenv("AVAILABILITY_CACHE_TTL", "60"))

# In-process fallback used while the database is unreachable
FALLBACK_TTL_SECONDS = int(os.getenv("FALLBACK_TTL_SECONDS", "900"))
FALLBACK_MAX_ENTRIES = int(os.getenv("FALLBACK_MAX_ENTRIES", "366"))
