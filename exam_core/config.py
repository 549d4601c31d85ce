import os
from dotenv import load_dotenv

load_dotenv()

BASE_DIR = os.path.dirname(os.path.dirname(__file__))

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///" + os.path.join(BASE_DIR, "exams.db"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# options beyond this are rejected before compaction
MAX_OPTIONS = int(os.getenv("EXAM_MAX_OPTIONS") or 5)

# fixed option labels of a boolean question, index 0 is "true"
BOOLEAN_OPTIONS = ["Benar", "Salah"]

TRUE_WORDS = {"benar", "betul", "true", "t", "ya", "y", "yes"}
FALSE_WORDS = {"salah", "false", "f", "tidak", "n", "no"}

QUESTION_KINDS = ["single_choice", "multi_choice", "boolean", "free_text"]

# kind names used by older exam payloads
KIND_ALIASES = {
    "multiple_choice": "single_choice",
    "mixed_multiple_choice": "multi_choice",
    "true_false": "boolean",
    "essay": "free_text",
}
