"""
Rate table assembly.

Combines located dates and stitched amounts into a deduplicated, chronologically
ordered installment schedule. The assembly core works on token lists so it can
run on the vector text layer and on OCR output alike; RateTableExtractor feeds
it from a PDF opened with pdfplumber.
"""

import logging
import math
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Sequence, Iterable, Callable, Tuple, Union, Pattern

from tabulate import tabulate

from .amounts import stitch_amount_right_of, euros_to_number
from .config import ExtractionConfig
from .dates import find_date_candidates, normalize_date
from .documents import open_document
from .exceptions import RateExtractionError, TextExtractionError, classify_pdf_error
from .geometry import group_lines, page_text_items, tokens_from_text_items
from .models import PositionedToken, Rata, DuplicateDate, ExtractionResult


# Line grouping tolerance for OCR word boxes (pixels)
OCR_LINE_TOLERANCE = 6.0

ToleranceRule = Callable[[PositionedToken], Tuple[float, float]]

module_logger = logging.getLogger(__name__)


def fixed_tolerances(narrow: float = 6.0, wide: float = 12.0) -> ToleranceRule:
    """Tolerance rule returning the same narrow and wide band for every anchor."""
    def rule(anchor: PositionedToken) -> Tuple[float, float]:
        return narrow, wide
    return rule


def ocr_tolerances(anchor: PositionedToken) -> Tuple[float, float]:
    """Tolerance rule for OCR geometry, scaled on the anchor height."""
    narrow = max(6, math.floor(anchor.height * 0.9 + 0.5))
    return float(narrow), float(narrow * 2)


def schedule_sort_key(row: Rata) -> str:
    return row.sort_key


def log_schedule_diagnostic(rows: Sequence[Rata], expected: int,
                            logger: Optional[logging.Logger] = None,
                            label: str = 'Rate table',
                            level: int = logging.WARNING) -> None:
    """Log the rows found when fewer than ``expected`` were extracted."""
    logger = logger or module_logger
    table = tabulate(
        [[index, row.scadenza, f"{row.totale_euro:.2f}", row.year] for index, row in enumerate(rows, 1)],
        headers=['#', 'Scadenza', 'Totale EUR', 'Anno'],
        tablefmt='simple'
    )
    logger.log(level, f"{label}: found {len(rows)} installments (expected {expected})\n{table}")


def assemble_rate_table(pages: Iterable[Sequence[PositionedToken]],
                        line_tolerance: float = 2.0,
                        tolerance_rule: Optional[ToleranceRule] = None,
                        skip_patterns: Sequence[Union[str, Pattern]] = (),
                        date_window: int = 6,
                        amount_window: int = 5,
                        expected: int = 10,
                        logger: Optional[logging.Logger] = None) -> ExtractionResult:
    """
    Assemble an installment schedule from the tokens of each page.

    For every page the tokens are grouped into lines, dates are located, and
    the amount to the right of each date is stitched with the narrow band,
    then the wide band. Amounts that do not parse are skipped. Rows are keyed
    by their DD-MM-YYYY date; a later row for the same date replaces the
    earlier one and the replacement is recorded in ``duplicates``.

    Args:
        pages: One token sequence per page
        line_tolerance: Line grouping tolerance
        tolerance_rule: Returns the (narrow, wide) amount bands for an anchor
        skip_patterns: Extra line patterns ignored by the date locator
        date_window: Widest token window for dates
        amount_window: Widest token window for amounts
        expected: Expected number of installments, for diagnostics
        logger: Optional logger

    Returns:
        ExtractionResult with rows sorted ascending by date
    """
    logger = logger or module_logger
    tolerance_rule = tolerance_rule or fixed_tolerances()
    found = {}
    result = ExtractionResult()

    for page_number, tokens in enumerate(pages, 1):
        result.page_count += 1
        tokens = list(tokens)
        if not tokens:
            continue

        lines = group_lines(tokens, line_tolerance)
        candidates = find_date_candidates(lines, skip_patterns, max_window=date_window)
        logger.debug(f"Page {page_number}: {len(candidates)} candidate dates")

        for candidate in candidates:
            amount_text = None
            for tolerance in tolerance_rule(candidate.anchor):
                amount_text = stitch_amount_right_of(tokens, candidate.anchor, tolerance, amount_window)
                if amount_text:
                    break
            if not amount_text:
                logger.debug(f"No amount found for {candidate.scadenza}")
                continue

            value = euros_to_number(amount_text)
            if not math.isfinite(value):
                continue

            scadenza = normalize_date(candidate.day, candidate.month, candidate.year)
            try:
                datetime.strptime(scadenza, '%d-%m-%Y')
            except ValueError:
                logger.debug(f"Skipping {scadenza} on page {page_number}: not a calendar date")
                continue

            previous = found.get(scadenza)
            if previous is not None:
                logger.warning(
                    f"Duplicate due date {scadenza} on page {page_number}: "
                    f"{previous.totale_euro:.2f} replaced by {value:.2f}"
                )
                result.duplicates.append(DuplicateDate(
                    scadenza=scadenza,
                    previous=previous.totale_euro,
                    replacement=value,
                    page_number=page_number
                ))
            found[scadenza] = Rata(scadenza=scadenza, totale_euro=value, year=int(candidate.year))

    result.rows = sorted(found.values(), key=schedule_sort_key)
    if len(result.rows) < expected:
        log_schedule_diagnostic(result.rows, expected, logger, level=logging.DEBUG)
        result.add_diagnostic(f"Found {len(result.rows)} installments, expected {expected}")
    return result


class RateTableExtractor:
    """
    Extract an installment schedule from the text layer of a PDF.

    Pages are read one at a time with pdfplumber; the document is always
    released, even when a page fails.
    """

    def __init__(self, config: Optional[ExtractionConfig] = None,
                 logger: Optional[logging.Logger] = None):
        """
        Initialize RateTableExtractor.

        Args:
            config: Extraction settings (defaults when omitted)
            logger: Optional logger instance
        """
        self.config = config or ExtractionConfig()
        self.logger = logger or logging.getLogger(__name__)

    def read_page_tokens(self, pdf_path: Union[str, Path]) -> List[List[PositionedToken]]:
        """
        Read positioned tokens for every page of a PDF.

        Raises:
            PDFReadabilityError: If the document cannot be opened
            TextExtractionError: If a page cannot be read
        """
        pages = []
        with open_document(pdf_path, self.logger) as pdf:
            for page_number, page in enumerate(pdf.pages, 1):
                try:
                    pages.append(tokens_from_text_items(page_text_items(page)))
                except Exception as e:
                    raise TextExtractionError(
                        f"Failed to read text from page {page_number}: {e}",
                        pdf_path=str(pdf_path),
                        page_number=page_number,
                        extraction_method='text_layer'
                    ) from e
        return pages

    def extract(self, pdf_path: Union[str, Path],
                skip_patterns: Sequence[Union[str, Pattern]] = ()) -> ExtractionResult:
        """
        Extract the schedule from a PDF's vector text.

        Args:
            pdf_path: Path to the PDF file
            skip_patterns: Extra header lines to ignore

        Returns:
            ExtractionResult with method 'text'

        Raises:
            RateExtractionError: For unreadable documents or pages
        """
        self.logger.info(f"Extracting rate table from text layer: {pdf_path}")
        try:
            pages = self.read_page_tokens(pdf_path)
        except RateExtractionError:
            raise
        except Exception as e:
            self.logger.error(f"Unexpected error reading {pdf_path}: {e}")
            raise classify_pdf_error(e, str(pdf_path)) from e

        cfg = self.config
        result = assemble_rate_table(
            pages,
            line_tolerance=cfg.line_tolerance,
            tolerance_rule=fixed_tolerances(cfg.amount_tolerance_narrow, cfg.amount_tolerance_wide),
            skip_patterns=skip_patterns,
            date_window=cfg.date_window_max,
            amount_window=cfg.amount_window_max,
            expected=cfg.expected_installments,
            logger=self.logger
        )
        result.method = 'text'
        result.pdf_path = str(pdf_path)
        self.logger.info(f"Text layer produced {len(result.rows)} installments from {result.page_count} pages")
        return result


def extract_adr_rate_table(pdf_path: Union[str, Path],
                           config: Optional[ExtractionConfig] = None) -> List[Rata]:
    """Extract the ADR rate table from a PDF's text layer."""
    return RateTableExtractor(config).extract(pdf_path).rows
