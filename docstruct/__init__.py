"""Heuristic structuring engine for Thai/English OCR text.

Normalizes noisy OCR transcriptions, classifies the document, extracts
typed fields and line items, reconciles totals and splits the text into
sections.
"""

__version__ = "1.0.0"
