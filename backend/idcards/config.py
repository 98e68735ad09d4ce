"""ID Card Studio settings, read once from the environment (and backend/.env)."""

import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv(Path(__file__).resolve().parent.parent / ".env")

# Collaborator timeouts (seconds)
OCR_TIMEOUT_SECONDS = float(os.getenv("OCR_TIMEOUT_SECONDS", "120"))
RENDER_TIMEOUT_SECONDS = float(os.getenv("RENDER_TIMEOUT_SECONDS", "300"))

# Quota applied when a company subscription carries no cards_limit
DEFAULT_CARDS_LIMIT = int(os.getenv("DEFAULT_CARDS_LIMIT", "50"))

# CR80 card in millimetres
DEFAULT_CARD_WIDTH_MM = 85.6
DEFAULT_CARD_HEIGHT_MM = 53.98
DEFAULT_CARD_DPI = 300

# Form ids: 12 random bytes -> 16 url-safe characters
FORM_ID_BYTES = 12
FORM_ID_MAX_ATTEMPTS = 3

# GridFS bucket for templates, photos and generated cards
STORAGE_BUCKET = os.getenv("IDCARDS_STORAGE_BUCKET", "idcard_files")

# Collections
TEMPLATES_COLLECTION = "idcard_templates"
FORMS_COLLECTION = "idcard_forms"
SUBMISSIONS_COLLECTION = "idcard_submissions"
COMPANIES_COLLECTION = "idcard_companies"
GENERATED_CARDS_COLLECTION = "idcard_generated_cards"
