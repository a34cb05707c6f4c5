"""
OCR path for scanned schedules.

Pages are rendered with pdfplumber, encoded as base64 JPEG and recognized with
Tesseract through pytesseract. Pages are processed one at a time and every
page gets its own scoped worker that is released even when recognition fails.
"""

import base64
import io
import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import List, Optional, Callable, Union, Iterator, Sequence, Dict, Tuple

import pytesseract
from PIL import Image

from .documents import open_document
from .exceptions import (
    RateExtractionError,
    TextExtractionError,
    OCRError,
    OCRAssetError,
    ExtractionCancelledError,
    classify_pdf_error
)
from .models import PDFPage, OCRResult, OCRWord


# Progress callback: (percent 0-100, current page, total pages)
ProgressCallback = Callable[[float, int, int], None]

PDF_POINTS_PER_INCH = 72


class CancellationToken:
    """Cooperative cancellation flag checked between pages."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self):
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, pdf_path: Optional[str] = None):
        if self._event.is_set():
            raise ExtractionCancelledError("Extraction cancelled", pdf_path=pdf_path)


def _page_failure(error: Exception, pdf_path: str, page_number: int, stage: str) -> RateExtractionError:
    """Classify a page-level failure, keeping the page number for generic errors."""
    classified = classify_pdf_error(error, pdf_path)
    if type(classified) is RateExtractionError:
        return TextExtractionError(
            f"Failed to {stage} page {page_number}: {error}",
            pdf_path=pdf_path,
            page_number=page_number,
            extraction_method='ocr'
        )
    classified.details.setdefault('page_number', page_number)
    return classified


class PDFRasterizer:
    """
    Render PDF pages to base64 JPEG images.

    The render scale trades OCR accuracy against processing time.
    """

    def __init__(self, scale: float = 1.5, jpeg_quality: int = 80,
                 logger: Optional[logging.Logger] = None):
        self.scale = scale
        self.jpeg_quality = jpeg_quality
        self.logger = logger or logging.getLogger(__name__)

    def rasterize(self, pdf_path: Union[str, Path], scale: Optional[float] = None,
                  max_pages: Optional[int] = None,
                  on_progress: Optional[Callable[[float], None]] = None,
                  cancel_token: Optional[CancellationToken] = None) -> List[PDFPage]:
        """
        Render the pages of a PDF.

        Args:
            pdf_path: Path to the PDF file
            scale: Render scale (defaults to the rasterizer's scale)
            max_pages: Render at most this many pages (None or 0 for all)
            on_progress: Called with (pages done / total) * 100 after each page
            cancel_token: Checked before each page

        Returns:
            Rendered pages in document order

        Raises:
            PDFReadabilityError: If the document cannot be opened
            TextExtractionError: If a page cannot be rendered
            ExtractionCancelledError: If cancellation was requested
        """
        scale = scale or self.scale
        resolution = int(round(PDF_POINTS_PER_INCH * scale))
        rendered = []

        with open_document(pdf_path, self.logger) as pdf:
            pages = pdf.pages[:max_pages] if max_pages else pdf.pages
            total = len(pages)
            self.logger.info(f"Rasterizing {total} pages at {resolution} dpi: {pdf_path}")

            for index, page in enumerate(pages):
                page_number = index + 1
                if cancel_token:
                    cancel_token.raise_if_cancelled(str(pdf_path))
                try:
                    image = page.to_image(resolution=resolution).original
                    rendered.append(self._encode(image, page_number))
                except Exception as e:
                    raise _page_failure(e, str(pdf_path), page_number, 'render') from e

                if on_progress:
                    on_progress((page_number / total) * 100)

        return rendered

    def _encode(self, image: Image.Image, page_number: int) -> PDFPage:
        buffer = io.BytesIO()
        rgb = image.convert('RGB')
        try:
            rgb.save(buffer, format='JPEG', quality=self.jpeg_quality)
        finally:
            rgb.close()
        return PDFPage(
            page_number=page_number,
            image_data=base64.b64encode(buffer.getvalue()).decode('ascii'),
            width=float(image.width),
            height=float(image.height)
        )


def decode_page_image(page: PDFPage) -> Image.Image:
    """Decode a rasterized page back into a PIL image."""
    data = page.image_data
    if data.startswith('data:'):
        data = data.split(',', 1)[1]
    image = Image.open(io.BytesIO(base64.b64decode(data)))
    image.load()
    return image


def words_from_tesseract_data(data: Dict[str, list]) -> Tuple[List[OCRWord], str, float]:
    """
    Convert pytesseract ``image_to_data`` output into words, text and confidence.

    Returns:
        (words, text with one line per Tesseract line, mean word confidence)
    """
    words = []
    lines: Dict[Tuple[int, int, int], List[str]] = {}
    for i, raw in enumerate(data.get('text', [])):
        text = str(raw or '').strip()
        try:
            confidence = float(data['conf'][i])
        except (TypeError, ValueError):
            confidence = -1.0
        if not text or confidence < 0:
            continue
        words.append(OCRWord(
            text=text,
            left=float(data['left'][i]),
            top=float(data['top'][i]),
            width=float(data['width'][i]),
            height=float(data['height'][i]),
            confidence=confidence
        ))
        key = (data['block_num'][i], data['par_num'][i], data['line_num'][i])
        lines.setdefault(key, []).append(text)

    text = '\n'.join(' '.join(parts) for parts in lines.values())
    mean = sum(w.confidence for w in words) / len(words) if words else 0.0
    return words, text, round(mean, 2)


class OCRWorker:
    """A recognition session for a single page."""

    def __init__(self, language: str, config: str = '', logger: Optional[logging.Logger] = None):
        self.language = language
        self.config = config
        self.logger = logger or logging.getLogger(__name__)
        self._images: List[Image.Image] = []
        self.terminated = False

    def recognize(self, page: PDFPage,
                  on_progress: Optional[Callable[[float], None]] = None) -> OCRResult:
        """
        Recognize one rasterized page.

        Args:
            page: Page image
            on_progress: Called with the page progress (0-100)
        """
        if self.terminated:
            raise OCRError("OCR worker already terminated")
        if on_progress:
            on_progress(0.0)

        image = decode_page_image(page)
        self._images.append(image)
        data = pytesseract.image_to_data(
            image,
            lang=self.language,
            config=self.config,
            output_type=pytesseract.Output.DICT
        )
        words, text, confidence = words_from_tesseract_data(data)

        if on_progress:
            on_progress(100.0)
        self.logger.debug(f"Page {page.page_number}: {len(words)} words, confidence {confidence}")
        return OCRResult(
            page_number=page.page_number,
            text=text,
            confidence=confidence,
            words=words,
            image_height=float(image.height)
        )

    def terminate(self):
        """Release the images held by this worker."""
        for image in self._images:
            image.close()
        self._images = []
        self.terminated = True


class OCREngine:
    """
    Tesseract recognition engine.

    ``ensure_ready`` checks the binary and language data once; callers own the
    engine instance and can ``reset`` it. ``worker`` hands out a scoped
    per-page worker.
    """

    def __init__(self, language: str = 'ita+eng', config: str = '',
                 logger: Optional[logging.Logger] = None):
        self.language = language
        self.config = config
        self.logger = logger or logging.getLogger(__name__)
        self._ready = False
        self.version = None

    @property
    def ready(self) -> bool:
        return self._ready

    def ensure_ready(self) -> None:
        """
        Verify that Tesseract and the configured languages are installed.

        Raises:
            OCRAssetError: If the binary or a language pack is missing
        """
        if self._ready:
            return
        try:
            self.version = pytesseract.get_tesseract_version()
            available = set(pytesseract.get_languages(config=''))
        except (pytesseract.TesseractNotFoundError, pytesseract.TesseractError, OSError) as e:
            raise OCRAssetError(f"Tesseract is not available: {e}", original_error=e) from e

        missing = [lang for lang in self.language.split('+') if lang and lang not in available]
        if missing:
            raise OCRAssetError(
                f"Tesseract language data missing: {', '.join(missing)}"
            )
        self.logger.info(f"Tesseract {self.version} ready ({self.language})")
        self._ready = True

    def reset(self) -> None:
        self._ready = False

    @contextmanager
    def worker(self) -> Iterator[OCRWorker]:
        """Acquire a worker for one page; it is terminated on every exit path."""
        worker = OCRWorker(self.language, self.config, self.logger)
        try:
            yield worker
        finally:
            try:
                worker.terminate()
            except Exception as e:
                self.logger.debug(f"Ignoring error while terminating OCR worker: {e}")


class OCRProcessor:
    """
    Run OCR over rasterized pages sequentially.

    A failure on any page aborts the whole run; a partially recognized
    document is never returned.
    """

    def __init__(self, engine: Optional[OCREngine] = None,
                 rasterizer: Optional[PDFRasterizer] = None,
                 logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)
        self.engine = engine or OCREngine(logger=self.logger)
        self.rasterizer = rasterizer or PDFRasterizer(logger=self.logger)

    def process_pages(self, pages: Sequence[PDFPage],
                      on_progress: Optional[ProgressCallback] = None,
                      cancel_token: Optional[CancellationToken] = None,
                      pdf_path: Optional[str] = None) -> List[OCRResult]:
        """
        Recognize each page in order.

        Progress is reported as (i / total) * 100 + page_progress / total
        together with the current page number and the page count.

        Raises:
            OCRAssetError: If the engine is unavailable
            ExtractionCancelledError: If cancellation was requested
            RateExtractionError: Classified page failure
        """
        self.engine.ensure_ready()
        total = len(pages)
        results = []

        for index, page in enumerate(pages):
            if cancel_token:
                cancel_token.raise_if_cancelled(pdf_path)

            def report(page_progress: float, index=index, page=page):
                if on_progress:
                    on_progress((index / total) * 100 + page_progress / total, page.page_number, total)

            try:
                with self.engine.worker() as worker:
                    results.append(worker.recognize(page, report))
            except RateExtractionError:
                raise
            except Exception as e:
                self.logger.error(f"OCR failed on page {page.page_number}: {e}")
                error = _page_failure(e, pdf_path, page.page_number, 'recognize')
                if isinstance(error, TextExtractionError):
                    error = OCRError(
                        f"OCR failed on page {page.page_number}: {e}",
                        pdf_path=pdf_path,
                        details={'page_number': page.page_number}
                    )
                raise error from e

        if on_progress and total:
            on_progress(100.0, total, total)
        return results

    def process_pdf(self, pdf_path: Union[str, Path],
                    max_pages: Optional[int] = None,
                    scale: Optional[float] = None,
                    on_progress: Optional[ProgressCallback] = None,
                    cancel_token: Optional[CancellationToken] = None) -> List[OCRResult]:
        """Rasterize a PDF and recognize every page."""
        self.engine.ensure_ready()
        pages = self.rasterizer.rasterize(
            pdf_path, scale=scale, max_pages=max_pages, cancel_token=cancel_token
        )
        return self.process_pages(pages, on_progress, cancel_token, pdf_path=str(pdf_path))
