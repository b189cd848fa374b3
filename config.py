import os

from dotenv import load_dotenv

# Centralized configuration values shared across components.

load_dotenv(os.path.join(os.path.dirname(__file__), ".env"))

BACKEND_URL = os.getenv("BACKEND_URL", "")
BACKEND_ANON_KEY = os.getenv("BACKEND_ANON_KEY", "")
LOCAL_DB_URL = os.getenv("LOCAL_DB_URL", "sqlite:///./groupchallenge.db")
REQUEST_TIMEOUT = float(os.getenv("REQUEST_TIMEOUT", "10"))
DEFAULT_LANGUAGE = os.getenv("DEFAULT_LANGUAGE", "he")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
