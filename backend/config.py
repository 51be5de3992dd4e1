import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent

DB_URL = os.getenv("DB_URL", f"sqlite:///{(BASE_DIR / 'niri.db').as_posix()}")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

API_CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("API_CORS_ORIGINS", "http://localhost:8501").split(",")
    if origin.strip()
]

# Rejections already on record before a new one turns it into REJECTED_FINAL.
# Shared by state-level and MoSPI-level rejections.
REJECTION_ESCALATION_THRESHOLD = int(os.getenv("REJECTION_ESCALATION_THRESHOLD", "1"))

REJECTION_COMMENT_MAX_LENGTH = int(os.getenv("REJECTION_COMMENT_MAX_LENGTH", "500"))
APPROVAL_COMMENT_MAX_LENGTH = int(os.getenv("APPROVAL_COMMENT_MAX_LENGTH", "300"))
GENERAL_COMMENT_MAX_LENGTH = int(os.getenv("GENERAL_COMMENT_MAX_LENGTH", "400"))

PROHIBITED_PHRASES = [
    "spam", "scam", "fake", "fraud", "cheat",
]
