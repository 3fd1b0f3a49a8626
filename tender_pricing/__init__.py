"""
TenderPricing — Progressive catalog search and price matching for tenders

Turns a tender's unit-price schedule (DOCX, PDF) into priced bid rows by
looking each line item up in a remote price catalog: exact item code
first, then full description, then progressively shorter keyword windows.
"""

__version__ = "1.0.0"
__author__ = "TenderPricing"
