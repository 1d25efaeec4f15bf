import os
from dotenv import load_dotenv
load_dotenv()

class Settings:
    APP_NAME = os.getenv("APP_NAME", "Shop Ledger")
    SECRET_KEY = os.getenv("SECRET_KEY", "change-me")
    BASE_URL = os.getenv("BASE_URL", "http://localhost:8000")
    ENV = os.getenv("ENV", "dev")
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./shopledger.db")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    OWNER_EMAIL = os.getenv("OWNER_EMAIL", "")
    OWNER_PASSWORD = os.getenv("OWNER_PASSWORD", "")
    OWNER_NAME = os.getenv("OWNER_NAME", "Owner")
    DEFAULT_CURRENCY = os.getenv("DEFAULT_CURRENCY", "NGN")
    RESEND_API_KEY = os.getenv("RESEND_API_KEY", "")
    RESEND_API_URL = os.getenv("RESEND_API_URL", "https://api.resend.com/emails")
    REMINDER_FROM = os.getenv("REMINDER_FROM", "Payment Reminder <onboarding@resend.dev>")
    JOB_TOKEN_SUBJECT = "weekly-reminders"

settings = Settings()
