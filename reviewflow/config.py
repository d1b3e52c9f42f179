import os

from dotenv import load_dotenv

# -------------------------------------------------
# Load environment variables from .env
# -------------------------------------------------
load_dotenv()


# ---------------- DATABASE ----------------

DATABASE_URL = os.getenv("DATABASE_URL")


# ---------------- AUTH ----------------

JWT_SECRET = os.getenv("JWT_SECRET", "change-me")
JWT_ALGORITHM = "HS256"


# ---------------- AI ----------------

GEMINI_API_KEY = os.getenv("GEMINI_API_KEY")
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-1.5-flash")

OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")

DEFAULT_AI_MODEL = os.getenv("DEFAULT_AI_MODEL", "gemini")
AI_TIMEOUT_SECONDS = float(os.getenv("AI_TIMEOUT_SECONDS", "30"))
AI_TEMPERATURE = 0.7


# ---------------- APP ----------------

ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.getenv("ALLOWED_ORIGINS", "*").split(",")
]

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "8000"))

LOG_FILE = os.getenv("LOG_FILE")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
