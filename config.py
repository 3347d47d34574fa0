import os
from dotenv import load_dotenv

load_dotenv()

MONGO_URI = os.getenv("MONGO_URI", "mongodb://127.0.0.1:27017/selfie_db")
DB_NAME = (os.getenv("DB_NAME") or "").strip() or "selfie_db"

# "stub" never leaves the process, "fcm" talks to Firebase Cloud Messaging v1
PUSH_MODE = (os.getenv("PUSH_MODE", "stub") or "stub").strip().lower()
FCM_PROJECT_ID = os.getenv("FCM_PROJECT_ID", "").strip()
FCM_SERVICE_ACCOUNT_JSON = os.getenv("FCM_SERVICE_ACCOUNT_JSON", "").strip()
FCM_SERVICE_ACCOUNT_PATH = os.getenv("FCM_SERVICE_ACCOUNT_PATH", "").strip()
PUSH_INTERNAL_TOKEN = (os.getenv("PUSH_INTERNAL_TOKEN", "") or "").strip()

LEDGER_TIMEZONE = (os.getenv("LEDGER_TIMEZONE", "UTC") or "UTC").strip()
DISPATCH_TIMEOUT_SECONDS = float(os.getenv("DISPATCH_TIMEOUT_SECONDS", "15"))
DISPATCH_CONCURRENCY = int(os.getenv("DISPATCH_CONCURRENCY", "1"))

# JSON object {"Country": {"timezone": "...", "target_time": "HH:MM"}}
NOTIFICATION_WINDOWS_JSON = os.getenv("NOTIFICATION_WINDOWS_JSON", "").strip()

LOG_LEVEL = (os.getenv("LOG_LEVEL", "INFO") or "INFO").strip().upper()
LOG_FORMAT = (os.getenv("LOG_FORMAT", "json") or "json").strip().lower()
