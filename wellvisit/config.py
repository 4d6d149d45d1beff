import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./wellvisit.db")

# Security - CRITICAL: No default secret key in production
SECRET_KEY = os.getenv("SECRET_KEY")
if not SECRET_KEY:
    import warnings

    warnings.warn(
        "SECRET_KEY not set! Using insecure default - DO NOT USE IN PRODUCTION", RuntimeWarning, stacklevel=2
    )
    SECRET_KEY = "INSECURE-DEV-KEY-CHANGE-IN-PRODUCTION"  # noqa: S105 - Dev fallback only

ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "720"))

# Frontend base URL for redirects and notification links
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")
# Comma separated CORS origins, FRONTEND_URL is always allowed
ALLOWED_ORIGINS = [o.strip() for o in os.getenv("ALLOWED_ORIGINS", "").split(",") if o.strip()]
CLINIC_NAME = os.getenv("CLINIC_NAME", "WellVisit Clinic")
CLINIC_LOCATION = os.getenv("CLINIC_LOCATION", "WellVisit Clinic, Main Branch")

# PayMongo Configuration
PAYMONGO_SECRET_KEY = os.getenv("PAYMONGO_SECRET_KEY")
PAYMONGO_WEBHOOK_SECRET = os.getenv("PAYMONGO_WEBHOOK_SECRET")
PAYMONGO_API_BASE = os.getenv("PAYMONGO_API_BASE", "https://api.paymongo.com/v1")
# Percentage added on top of the consultation fee for online payments
PAYMENT_PROCESSING_FEE_PERCENT = float(os.getenv("PAYMENT_PROCESSING_FEE_PERCENT", "2.5"))
PAYMENT_CURRENCY = os.getenv("PAYMENT_CURRENCY", "PHP")

# Twilio SMS Configuration (SMS is logged only when credentials are missing)
TWILIO_ACCOUNT_SID = os.getenv("TWILIO_ACCOUNT_SID")
TWILIO_AUTH_TOKEN = os.getenv("TWILIO_AUTH_TOKEN")
TWILIO_FROM_NUMBER = os.getenv("TWILIO_FROM_NUMBER")
SMS_ENABLED = os.getenv("SMS_ENABLED", "true").lower() == "true"

# Resend Email Configuration
RESEND_API_KEY = os.getenv("RESEND_API_KEY")
EMAIL_FROM_ADDRESS = os.getenv("EMAIL_FROM_ADDRESS", "WellVisit <noreply@wellvisit.ph>")

# VideoSDK Configuration
VIDEOSDK_API_KEY = os.getenv("VIDEOSDK_API_KEY")
VIDEOSDK_SECRET_KEY = os.getenv("VIDEOSDK_SECRET_KEY")
VIDEOSDK_API_BASE = os.getenv("VIDEOSDK_API_BASE", "https://api.videosdk.live")
VIDEOSDK_MEETING_URL = os.getenv("VIDEOSDK_MEETING_URL", f"{FRONTEND_URL}/video-call")

# Appointment automation
AUTO_CONFIRM_DELAY_HOURS = int(os.getenv("AUTO_CONFIRM_DELAY_HOURS", "2"))
AUTO_CONFIRM_CHECK_MINUTES = int(os.getenv("AUTO_CONFIRM_CHECK_MINUTES", "10"))
