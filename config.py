import os

# Base directory
BASE_DIR = os.path.dirname(os.path.abspath(__file__))

# Paths
STATIC_DIR = os.path.join(BASE_DIR, "static")
LOG_FILE = os.path.join(BASE_DIR, "launch.log")
QUESTION_BANK_FILE = os.getenv(
    "APTITUDE_QUESTION_BANK",
    os.path.join(BASE_DIR, "aptitude_test", "data", "aptitude_questions.json"),
)
HISTORY_FILE = os.getenv("APTITUDE_HISTORY_FILE", os.path.join(BASE_DIR, "test_history.json"))

# Server
DEFAULT_HOST = os.getenv("HOST", "127.0.0.1")
DEFAULT_PORT = int(os.getenv("PORT", "8000"))
DEFAULT_TIMEOUT = 15.0

# Test session
TEST_DURATION_SECONDS = int(os.getenv("APTITUDE_TEST_DURATION", "600"))   # 10 minutes
TARGET_QUESTION_COUNT = 10
DEFAULT_USER_ID = "demo-user"

# OpenAI (question importer)
MODEL_NAME = os.getenv("APTITUDE_IMPORT_MODEL", "gpt-4o-mini")

# PDF import
MAX_PDF_PAGES = 200
MAX_PDF_SIZE = 50 * 1024 * 1024     # 50 MB
TEXT_PAGES_PER_GROUP = 5
MAX_SECTION_CHARS = 80000
