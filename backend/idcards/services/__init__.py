"""ID Card Studio Services"""

from .field_extractor import extract_fields, match_keyword
from .form_service import form_service, form_rejection, is_form_usable
from .ocr_service import template_ocr_service
from .card_service import card_issuance_service
from .template_service import template_service
from .company_service import company_service

__all__ = [
    "extract_fields",
    "match_keyword",
    "form_service",
    "form_rejection",
    "is_form_usable",
    "template_ocr_service",
    "card_issuance_service",
    "template_service",
    "company_service",
]
