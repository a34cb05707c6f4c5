"""
Text layer detection.

Decides whether a PDF carries extractable vector text or needs OCR.
"""

import logging
from pathlib import Path
from typing import Union, Optional, List

from .documents import open_document
from .exceptions import RateExtractionError, TextExtractionError, classify_pdf_error


logger = logging.getLogger(__name__)


def has_text_layer(pdf_path: Union[str, Path], check_pages: int = 2, min_chars: int = 10,
                   log: Optional[logging.Logger] = None) -> bool:
    """
    Check whether a PDF already contains extractable text.

    Returns True as soon as one of the first ``check_pages`` pages has more
    than ``min_chars`` characters of text. The document is always released.

    Raises:
        PDFReadabilityError: If the document cannot be opened
    """
    log = log or logger
    try:
        with open_document(pdf_path, log) as pdf:
            for page_number, page in enumerate(pdf.pages[:check_pages], 1):
                text = page.extract_text() or ''
                log.debug(f"Probe page {page_number}: {len(text)} characters")
                if len(text) > min_chars:
                    return True
    except RateExtractionError:
        raise
    except Exception as e:
        raise classify_pdf_error(e, str(pdf_path)) from e
    return False


def extract_page_texts(pdf_path: Union[str, Path], max_pages: Optional[int] = None,
                       log: Optional[logging.Logger] = None) -> List[str]:
    """
    Extract plain text for each page, used by format detection.

    Raises:
        PDFReadabilityError: If the document cannot be opened
        TextExtractionError: If a page cannot be read
    """
    log = log or logger
    texts = []
    with open_document(pdf_path, log) as pdf:
        pages = pdf.pages if max_pages is None else pdf.pages[:max_pages]
        for page_number, page in enumerate(pages, 1):
            try:
                texts.append(page.extract_text() or '')
            except Exception as e:
                raise TextExtractionError(
                    f"Failed to read text from page {page_number}: {e}",
                    pdf_path=str(pdf_path),
                    page_number=page_number,
                    extraction_method='text_layer'
                ) from e
    return texts
