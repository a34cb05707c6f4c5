"""
Hybrid schedule extraction.

Runs the vector text pipeline first and falls back to OCR (remote
normalization when an endpoint is configured, local Tesseract otherwise) when
the text layer is missing or yields too few installments. A single missing
installment is then repaired when enabled.
"""

import logging
import tempfile
from pathlib import Path
from typing import Optional, Callable, Union, List, Dict

from .config import ExtractionConfig
from .dates import PAGOPA_HEADER_PATTERN
from .exceptions import (
    RateExtractionError,
    ConfigurationError,
    ExtractionCancelledError
)
from .format_detection import detect_pdf_format
from .geometry import tokens_from_ocr_words, tokens_from_plain_text
from .models import ExtractionResult, Rata, OCRResult
from .normalize_client import normalize_pdf_via_api
from .ocr import OCREngine, OCRProcessor, PDFRasterizer, CancellationToken, ProgressCallback
from .rate_table import (
    RateTableExtractor,
    assemble_rate_table,
    ocr_tolerances,
    schedule_sort_key,
    log_schedule_diagnostic,
    OCR_LINE_TOLERANCE
)
from .repair import repair_schedule
from .text_layer import has_text_layer, extract_page_texts


PROFILE_ADR = 'adr'
PROFILE_PAGOPA = 'pagopa'

PROFILE_SKIP_PATTERNS = {
    PROFILE_ADR: (),
    PROFILE_PAGOPA: (PAGOPA_HEADER_PATTERN,),
}

PHASE_TEXT = 'text'
PHASE_OCR = 'ocr'
PHASE_DONE = 'done'

Normalizer = Callable[..., Path]


def merge_by_date(text_rows: List[Rata], ocr_rows: List[Rata]) -> List[Rata]:
    """Merge two row sets keyed by due date; OCR rows replace text rows."""
    merged: Dict[str, Rata] = {}
    for row in list(text_rows) + list(ocr_rows):
        merged[row.scadenza] = row
    return sorted(merged.values(), key=schedule_sort_key)


class ScheduleExtractionPipeline:
    """
    Extract an installment schedule from a PDF with OCR fallback.

    The OCR engine and the normalizer are injected by the caller; defaults
    are built from the configuration when omitted.
    """

    def __init__(self, config: Optional[ExtractionConfig] = None,
                 ocr_engine: Optional[OCREngine] = None,
                 normalizer: Optional[Normalizer] = None,
                 logger: Optional[logging.Logger] = None):
        """
        Initialize the pipeline.

        Args:
            config: Extraction settings
            ocr_engine: Recognition engine (Tesseract with the configured language by default)
            normalizer: Callable (pdf_path, endpoint_url, timeout, output_dir=...) returning the
                normalized PDF path
            logger: Optional logger instance
        """
        self.config = config or ExtractionConfig()
        self.logger = logger or logging.getLogger(__name__)
        self.ocr_engine = ocr_engine or OCREngine(language=self.config.ocr_language, logger=self.logger)
        self.normalizer = normalizer or normalize_pdf_via_api
        self.text_extractor = RateTableExtractor(self.config, self.logger)
        self.rasterizer = PDFRasterizer(
            scale=self.config.render_scale,
            jpeg_quality=self.config.jpeg_quality,
            logger=self.logger
        )
        self.ocr_processor = OCRProcessor(self.ocr_engine, self.rasterizer, self.logger)

    def extract(self, pdf_path: Union[str, Path], profile: str = PROFILE_ADR,
                on_phase: Optional[Callable[[str], None]] = None,
                on_progress: Optional[ProgressCallback] = None,
                cancel_token: Optional[CancellationToken] = None) -> ExtractionResult:
        """
        Extract the schedule of a PDF.

        Args:
            pdf_path: Path to the PDF file
            profile: 'adr' keeps the larger of the text and OCR results;
                'pagopa' merges them by date
            on_phase: Called with 'text', 'ocr' and 'done'
            on_progress: OCR progress callback (percent, page, total pages)
            cancel_token: Cooperative cancellation flag

        Returns:
            ExtractionResult

        Raises:
            ConfigurationError: For an unknown profile
            PDFReadabilityError: If the document cannot be opened
            OCRError: If OCR fails and the text layer produced nothing
            ExtractionCancelledError: If cancellation was requested
        """
        if profile not in PROFILE_SKIP_PATTERNS:
            raise ConfigurationError(f"Unknown extraction profile: {profile}")

        cfg = self.config
        path = Path(pdf_path)
        skip_patterns = PROFILE_SKIP_PATTERNS[profile]
        notify = on_phase or (lambda phase: None)
        result = ExtractionResult(pdf_path=str(path))

        self.logger.info(f"Extracting schedule from {path} (profile {profile})")
        notify(PHASE_TEXT)

        text_rows: List[Rata] = []
        if has_text_layer(path, cfg.probe_pages, cfg.probe_min_chars, self.logger):
            try:
                text_result = self.text_extractor.extract(path, skip_patterns)
                text_rows = text_result.rows
                result.page_count = text_result.page_count
                result.duplicates.extend(text_result.duplicates)
            except RateExtractionError as e:
                self.logger.warning(f"Text layer extraction failed: {e}")
                result.add_diagnostic(f"Text layer extraction failed: {e}")
            result.format_detection = self._detect_format(path)
        else:
            self.logger.info("No text layer found")
            result.add_diagnostic("No text layer found")

        rows = text_rows
        result.method = 'text' if text_rows else 'none'

        if len(text_rows) < cfg.min_expected and cfg.ocr_enabled:
            self.logger.info(
                f"Text layer insufficient ({len(text_rows)} < {cfg.min_expected}), starting OCR fallback"
            )
            notify(PHASE_OCR)
            try:
                ocr_result = self._run_ocr(path, skip_patterns, on_progress, cancel_token)
            except ExtractionCancelledError:
                raise
            except RateExtractionError as e:
                if not text_rows:
                    raise
                self.logger.warning(f"OCR extraction failed, keeping text layer rows: {e}")
                result.add_diagnostic(f"OCR extraction failed: {e}")
            else:
                result.duplicates.extend(ocr_result.duplicates)
                result.page_count = result.page_count or ocr_result.page_count
                rows, result.method = self._combine(profile, text_rows, ocr_result)

        if cfg.repair_enabled and len(rows) == cfg.expected_installments - 1:
            repaired = repair_schedule(rows, cfg.expected_installments, self.logger)
            if len(repaired) != len(rows):
                result.repaired = True
                result.add_diagnostic(
                    "Inserted missing installment " +
                    ', '.join(row.scadenza for row in repaired if row.synthetic)
                )
            rows = repaired

        result.rows = rows
        if len(rows) < cfg.min_expected:
            log_schedule_diagnostic(rows, cfg.min_expected, self.logger, label='Hybrid extraction')

        notify(PHASE_DONE)
        self.logger.info(f"Extracted {len(rows)} installments from {path} via {result.method}")
        return result

    def _detect_format(self, path: Path):
        try:
            return detect_pdf_format(extract_page_texts(path, self.config.probe_pages, self.logger))
        except RateExtractionError as e:
            self.logger.debug(f"Format detection skipped: {e}")
            return None

    def _combine(self, profile: str, text_rows: List[Rata], ocr_result: ExtractionResult):
        ocr_rows = ocr_result.rows
        if profile == PROFILE_PAGOPA:
            merged = merge_by_date(text_rows, ocr_rows)
            if text_rows and ocr_rows:
                return merged, 'merged'
            return merged, ocr_result.method if ocr_rows else ('text' if text_rows else 'none')

        if len(ocr_rows) >= len(text_rows):
            return list(ocr_rows), ocr_result.method if ocr_rows else 'none'
        return list(text_rows), 'text'

    def _run_ocr(self, path: Path, skip_patterns, on_progress, cancel_token) -> ExtractionResult:
        cfg = self.config
        if cfg.normalize_endpoint:
            # The searchable copy only lives for the re-extraction
            with tempfile.TemporaryDirectory(prefix='rate_extraction_') as work_dir:
                normalized = self.normalizer(path, cfg.normalize_endpoint, cfg.normalize_timeout,
                                             output_dir=work_dir)
                self.logger.info(f"Re-running text extraction on normalized copy {normalized}")
                normalized_result = self.text_extractor.extract(normalized, skip_patterns)
            normalized_result.method = 'normalized'
            normalized_result.pdf_path = str(path)
            return normalized_result

        self.ocr_engine.ensure_ready()
        pages = self.rasterizer.rasterize(
            path,
            scale=cfg.render_scale,
            max_pages=cfg.max_ocr_pages or None,
            cancel_token=cancel_token
        )
        ocr_pages = self.ocr_processor.process_pages(pages, on_progress, cancel_token, str(path))
        return self.assemble_ocr_results(ocr_pages, skip_patterns)

    def assemble_ocr_results(self, ocr_pages: List[OCRResult], skip_patterns=()) -> ExtractionResult:
        """Assemble a schedule from OCR output, using word boxes when available."""
        token_pages = []
        for page in ocr_pages:
            if page.words:
                token_pages.append(tokens_from_ocr_words(page.words, page.image_height))
            else:
                token_pages.append(tokens_from_plain_text(page.text))

        result = assemble_rate_table(
            token_pages,
            line_tolerance=OCR_LINE_TOLERANCE,
            tolerance_rule=ocr_tolerances,
            skip_patterns=skip_patterns,
            date_window=self.config.date_window_max,
            amount_window=self.config.amount_window_max,
            expected=self.config.expected_installments,
            logger=self.logger
        )
        result.method = 'ocr'
        return result


def extract_schedule(pdf_path: Union[str, Path], profile: str = PROFILE_ADR,
                     config: Optional[ExtractionConfig] = None) -> List[Rata]:
    """Extract an installment schedule with the default pipeline."""
    return ScheduleExtractionPipeline(config).extract(pdf_path, profile).rows
