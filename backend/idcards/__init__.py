"""
ID Card Studio - Template-driven employee ID cards
==================================================

A standalone SaaS product for companies issuing printable ID cards.

Flow:
- Upload an ID-card template image, OCR proposes registration form fields
- Publish a shareable public form built from those fields
- Employees submit their details and a photo
- Issue a PDF card with an embedded QR code, within the company's card quota

All records live in the idcard_* collections.
"""

__version__ = "1.0.0"
__product__ = "ID Card Studio"
