"""
Configuration settings for the TicketAgent message-understanding service
"""
import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Project root directory
BASE_DIR = Path(__file__).resolve().parent.parent

# Data Directories
DATA_DIR = BASE_DIR / "data"
LOGS_DIR = DATA_DIR / "logs"

# Catalog Settings
CATALOG_PATH = Path(os.getenv("CATALOG_PATH", str(DATA_DIR / "teams.json")))

# LLM Settings (Ollama)
# For local development: http://localhost:11434
# For Docker deployment: http://ollama:11434
OLLAMA_BASE_URL = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434")
OLLAMA_MODEL = os.getenv("OLLAMA_MODEL", "qwen2.5:7b-instruct")
OLLAMA_TEMPERATURE = float(os.getenv("OLLAMA_TEMPERATURE", "0.1"))
OLLAMA_TIMEOUT = float(os.getenv("OLLAMA_TIMEOUT", "20"))
# Set to "false" to run with the deterministic matcher only
LLM_ENABLED = os.getenv("LLM_ENABLED", "true").lower() in ("1", "true", "yes")

# Session Settings
SESSION_MAX_USERS = int(os.getenv("SESSION_MAX_USERS", "500"))
SESSION_TTL_HOURS = float(os.getenv("SESSION_TTL_HOURS", "24"))
SESSION_HISTORY_LIMIT = int(os.getenv("SESSION_HISTORY_LIMIT", "6"))
GREETING_COOLDOWN_MINUTES = float(os.getenv("GREETING_COOLDOWN_MINUTES", "15"))

# Search Handoff Settings
# Empty URL = log-only handoff
SEARCH_HANDOFF_URL = os.getenv("SEARCH_HANDOFF_URL", "")
USER_AGENT = os.getenv("USER_AGENT", "TicketAgentBot/1.0")
REQUEST_TIMEOUT = int(os.getenv("REQUEST_TIMEOUT", "15"))
MAX_CONCURRENT_REQUESTS = int(os.getenv("MAX_CONCURRENT_REQUESTS", "10"))

# Logging Settings
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("LOG_FILE", "")

# API Settings
API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", "3100"))
