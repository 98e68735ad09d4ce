"""Field Extractor

Turns OCR text blocks into proposed registration form fields.

Heuristic: a block whose lower-cased text contains one of KEYWORDS becomes a
field; the first keyword in KEYWORDS order wins, whatever its position in the
block. Matching is plain substring containment, so "id" also matches inside
words such as "valid" or "Provident". That is a known limitation of the
heuristic; match_keyword is the single place to swap in a better matcher.

Pure functions only. Persisting the result is the caller's job.
"""

import re
import uuid
from typing import Iterable, List, Optional, Sequence

from idcards.models.templates import FieldType, OCRBlock, TemplateField

KEYWORDS = (
    "name",
    "id",
    "designation",
    "role",
    "department",
    "phone",
    "email",
    "blood",
    "join",
    "date",
)

PHOTO_FIELD_LABEL = "Employee Photo"
PHOTO_FIELD_PLACEHOLDER = "Upload Photo"

_WORD_START = re.compile(r"\b\w", re.ASCII)


def capitalize_words(text: str) -> str:
    """Upper-case the first character of every word; the rest is untouched."""
    return _WORD_START.sub(lambda m: m.group(0).upper(), text)


def match_keyword(text: str, keywords: Sequence[str] = KEYWORDS) -> Optional[str]:
    """Return the first keyword (in keyword order) contained in text."""
    lowered = text.lower()
    for keyword in keywords:
        if keyword in lowered:
            return keyword
    return None


def infer_field_type(keyword: str) -> FieldType:
    # "mobile" and "dob" are not in KEYWORDS, so only "phone" / "date"
    # reach these branches today.
    k = keyword.lower()
    if "email" in k:
        return FieldType.EMAIL
    if "phone" in k or "mobile" in k:
        return FieldType.PHONE
    if "date" in k or "dob" in k:
        return FieldType.DATE
    # "id" stays free text: ids may be alphanumeric
    return FieldType.TEXT


def synthesize_label(text: str) -> str:
    return capitalize_words(text.replace(":", "").strip())


def build_photo_field() -> TemplateField:
    return TemplateField(
        id=f"field_photo_{uuid.uuid4().hex[:12]}",
        label=PHOTO_FIELD_LABEL,
        field_type=FieldType.PHOTO,
        required=True,
        placeholder=PHOTO_FIELD_PLACEHOLDER,
        ocr_mapped=False,
    )


def field_from_block(block: OCRBlock) -> Optional[TemplateField]:
    keyword = match_keyword(block.text)
    if keyword is None:
        return None
    return TemplateField(
        label=synthesize_label(block.text),
        field_type=infer_field_type(keyword),
        required=True,
        placeholder=f"Enter {capitalize_words(keyword)}",
        ocr_mapped=True,
        ocr_text=block.text,
    )


def extract_fields(blocks: Iterable[OCRBlock]) -> List[TemplateField]:
    """Propose fields for keyword blocks, in block order, then the photo field.

    The photo field is always appended, even if a block already mentions a
    photo.
    """
    fields = []
    for block in blocks:
        field = field_from_block(block)
        if field is not None:
            fields.append(field)
    fields.append(build_photo_field())
    return fields
