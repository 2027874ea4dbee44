import os
from dotenv import load_dotenv

load_dotenv()

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Where uploaded files are stored
UPLOAD_DIR = os.getenv("UPLOAD_DIR", "./uploaded_excels")
os.makedirs(UPLOAD_DIR, exist_ok=True)

# users.json and one folder per user (templates.json, charts.json)
DATA_DIR = os.getenv("DATA_DIR", "./server-data")
USERS_FILE = os.path.join(DATA_DIR, "users.json")
USER_DATA_DIR = os.path.join(DATA_DIR, "user_data")
os.makedirs(USER_DATA_DIR, exist_ok=True)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./sessions.db")

JWT_SECRET = os.getenv("JWT_SECRET", "excel-draw-secret-key")
JWT_ALGORITHM = "HS256"
TOKEN_TTL_HOURS = int(os.getenv("TOKEN_TTL_HOURS", "24"))
COOKIE_SECURE = os.getenv("COOKIE_SECURE", "false").lower() in ("1", "true", "yes")

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

PREVIEW_ROWS = int(os.getenv("PREVIEW_ROWS", "20"))
