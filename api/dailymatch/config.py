import os

MATCH_UTC_OFFSET_HOURS = int(os.getenv("MATCH_UTC_OFFSET_HOURS", "9"))
SWEEP_HOUR_UTC = int(os.getenv("SWEEP_HOUR_UTC", "15"))
SWEEP_MINUTE_UTC = int(os.getenv("SWEEP_MINUTE_UTC", "0"))

MATCH_MODES = ("friend", "community")

MESSAGE_PAGE_DEFAULT = int(os.getenv("MESSAGE_PAGE_DEFAULT", "50"))
MESSAGE_PAGE_MAX = int(os.getenv("MESSAGE_PAGE_MAX", "100"))
MESSAGE_MAX_LENGTH = int(os.getenv("MESSAGE_MAX_LENGTH", "1000"))
NOTIFICATION_PREVIEW_LENGTH = int(os.getenv("NOTIFICATION_PREVIEW_LENGTH", "50"))
HISTORY_LIMIT_DEFAULT = int(os.getenv("HISTORY_LIMIT_DEFAULT", "50"))

ADMIN_TOKEN = os.getenv("ADMIN_TOKEN", "")
JWT_SECRET = os.getenv("JWT_SECRET", "")
ACCESS_TOKEN_TTL_MINUTES = int(os.getenv("ACCESS_TOKEN_TTL_MINUTES", "15"))
DEV_MODE = os.getenv("DEV_MODE", "false").lower() == "true"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

RL_MATCH_START_LIMIT = int(os.getenv("RL_MATCH_START_LIMIT", "30"))
RL_CHAT_SEND_LIMIT = int(os.getenv("RL_CHAT_SEND_LIMIT", "120"))
RL_WINDOW_SECONDS = int(os.getenv("RL_WINDOW_SECONDS", "60"))

ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.getenv("ALLOWED_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000").split(",")
    if origin.strip()
]
