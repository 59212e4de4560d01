"""
StudyScribe Configuration Module
Centralized configuration for the AI generation pipeline.
"""

import os
from pathlib import Path

# Debug Mode Configuration
DEBUG_MODE = os.environ.get('DEBUG', 'false').lower() == 'true'

# Application Paths
APP_NAME = "StudyScribe"
APPDATA_DIR = Path(
    os.environ.get('STUDYSCRIBE_HOME')
    or Path(os.environ.get('APPDATA', os.path.expanduser('~/.config'))) / APP_NAME
)
LOGS_DIR = APPDATA_DIR / "logs"
CONFIG_DIR = APPDATA_DIR / "config"

# Ensure directories exist
for directory in [APPDATA_DIR, LOGS_DIR, CONFIG_DIR]:
    directory.mkdir(parents=True, exist_ok=True)

# User-editable settings (ollama.url, ollama.model)
SETTINGS_FILE = CONFIG_DIR / "settings.yaml"

# AI Model Configuration
OLLAMA_API_BASE = "http://localhost:11434"  # Default Ollama API endpoint
DEFAULT_OLLAMA_MODEL = "llama3"
GENERATION_TIMEOUT_SECONDS = 120  # Hard deadline for one streamed generation call
HEALTH_TIMEOUT_SECONDS = 30       # /api/tags checks

# Prompts longer than this are truncated before they are sent.
# Quiz prompts size their document text to fit; other prompts lose their tail.
MAX_PROMPT_LENGTH = 8000

# Transport retries for connection refused / network failures (3 attempts total)
MAX_TRANSPORT_RETRIES = 2

# Document Chunking (map-reduce generation)
CHUNK_SIZE = 6000      # Characters; documents at or below this are a single chunk
CHUNK_OVERLAP = 500    # Characters carried from the end of one chunk into the next
CHUNK_SEARCH_WINDOW_FRACTION = 0.4  # Boundary search covers the last 40% of a window

# Quiz Generation
QUIZ_MAX_RETRIES = 2         # Content-validation retries (3 attempts total)
MCQ_MIN_OPTIONS = 4
RAW_TEXT_MAX_LENGTH = 8000   # Total prompt budget used when sizing quiz prompts
DEFAULT_QUIZ_QUESTION_COUNT = 10
DEFAULT_QUIZ_QUESTION_TYPES = "multiple-choice, true-false, short-answer"
DEFAULT_QUIZ_DIFFICULTY = "medium"

# Background AI jobs
# Each job holds one streaming connection; cap the pool for laptop-class hardware.
AI_MAX_CONCURRENT_JOBS = min(os.cpu_count() or 4, 4)

# Supported document types for parsing
PDF_FILE_TYPES = {"pdf"}
DOCX_FILE_TYPES = {"docx"}
TEXT_FILE_TYPES = {"txt", "csv", "md"}
IMAGE_FILE_TYPES = {"png", "jpg", "jpeg", "gif"}
OCR_DPI = 300  # Scanned PDFs without a text layer

# Logging Configuration
LOG_FILE = LOGS_DIR / "processing.log"
DEBUG_LOG_FILE = LOGS_DIR / "debug_flow.txt"
LOG_FORMAT = "[%(levelname)s %(asctime)s] %(message)s"
LOG_DATE_FORMAT = "%H:%M:%S"
