"""
Rate schedule extraction for Italian tax installment plans.

This module turns ADR rate tables, PagoPA payment plans and F24 amortisation
plans (digital or scanned PDFs) into a chronologically ordered list of
installments, with OCR fallback and repair of a single missing row.
"""

from .models import (
    PositionedToken,
    TextLine,
    DateCandidate,
    Rata,
    OCRWord,
    OCRResult,
    PDFPage,
    DuplicateDate,
    ExtractionResult
)
from .exceptions import (
    RateExtractionError,
    PDFReadabilityError,
    PDFPasswordError,
    TextExtractionError,
    OCRError,
    OCRAssetError,
    OCRNormalizationError,
    ExtractionCancelledError,
    ConfigurationError,
    classify_pdf_error
)
from .config import ExtractionConfig, ConfigSetting, DEFAULT_SETTINGS, load_config
from .geometry import group_lines, tokens_from_text_items, tokens_from_ocr_words, tokens_from_plain_text
from .dates import find_date_candidates, parse_italian_date_to_iso, format_iso_to_italian
from .amounts import stitch_amount_right_of, euros_to_number
from .rate_table import RateTableExtractor, assemble_rate_table, extract_adr_rate_table
from .repair import repair_schedule
from .text_layer import has_text_layer
from .ocr import OCREngine, OCRProcessor, PDFRasterizer, CancellationToken
from .normalize_client import normalize_pdf_via_api
from .format_detection import FormatDetection, detect_pdf_format, is_format_reliable
from .pipeline import ScheduleExtractionPipeline, extract_schedule

__all__ = [
    'PositionedToken',
    'TextLine',
    'DateCandidate',
    'Rata',
    'OCRWord',
    'OCRResult',
    'PDFPage',
    'DuplicateDate',
    'ExtractionResult',
    'RateExtractionError',
    'PDFReadabilityError',
    'PDFPasswordError',
    'TextExtractionError',
    'OCRError',
    'OCRAssetError',
    'OCRNormalizationError',
    'ExtractionCancelledError',
    'ConfigurationError',
    'classify_pdf_error',
    'ExtractionConfig',
    'ConfigSetting',
    'DEFAULT_SETTINGS',
    'load_config',
    'group_lines',
    'tokens_from_text_items',
    'tokens_from_ocr_words',
    'tokens_from_plain_text',
    'find_date_candidates',
    'parse_italian_date_to_iso',
    'format_iso_to_italian',
    'stitch_amount_right_of',
    'euros_to_number',
    'RateTableExtractor',
    'assemble_rate_table',
    'extract_adr_rate_table',
    'repair_schedule',
    'has_text_layer',
    'OCREngine',
    'OCRProcessor',
    'PDFRasterizer',
    'CancellationToken',
    'normalize_pdf_via_api',
    'FormatDetection',
    'detect_pdf_format',
    'is_format_reliable',
    'ScheduleExtractionPipeline',
    'extract_schedule'
]
