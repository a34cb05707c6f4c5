"""
Unit tests for the OCR path.
"""

import base64
import io
from unittest.mock import MagicMock, Mock, patch

import pytest
import pytesseract
from PIL import Image

from rate_extraction.exceptions import (
    OCRError,
    OCRAssetError,
    ExtractionCancelledError,
    TextExtractionError
)
from rate_extraction.models import OCRResult, PDFPage
from rate_extraction.ocr import (
    CancellationToken,
    PDFRasterizer,
    OCRWorker,
    OCREngine,
    OCRProcessor,
    decode_page_image,
    words_from_tesseract_data
)


def tesseract_data():
    """image_to_data output for a two-line page with one empty box."""
    return {
        'text': ['', '31/01/2024', '1.000,00', '30/04/2024'],
        'conf': ['-1', '90', '80', '70'],
        'left': [0, 10, 200, 10],
        'top': [0, 20, 22, 60],
        'width': [500, 90, 70, 90],
        'height': [100, 12, 12, 12],
        'block_num': [0, 1, 1, 1],
        'par_num': [0, 1, 1, 1],
        'line_num': [0, 1, 1, 2],
    }


def encoded_page(page_number=1, size=(60, 40)):
    rasterizer = PDFRasterizer()
    return rasterizer._encode(Image.new('RGB', size, 'white'), page_number)


def mock_engine(results=None, error=None):
    """Engine whose workers return the given OCRResults in order."""
    engine = Mock()
    worker = Mock()
    remaining = list(results or [])

    def recognize(page, on_progress=None):
        if error:
            raise error
        if on_progress:
            on_progress(0.0)
            on_progress(100.0)
        return remaining.pop(0)

    worker.recognize.side_effect = recognize
    scope = MagicMock()
    scope.__enter__.return_value = worker
    scope.__exit__.return_value = False
    engine.worker.return_value = scope
    return engine


class TestCancellationToken:

    def test_cancel(self):
        token = CancellationToken()
        assert token.cancelled is False
        token.raise_if_cancelled()

        token.cancel()

        assert token.cancelled is True
        with pytest.raises(ExtractionCancelledError):
            token.raise_if_cancelled('scan.pdf')


class TestTesseractData:
    """Test cases for words_from_tesseract_data."""

    def test_words_text_and_confidence(self):
        """Test that empty boxes are skipped and lines are rebuilt."""
        words, text, confidence = words_from_tesseract_data(tesseract_data())

        assert [w.text for w in words] == ['31/01/2024', '1.000,00', '30/04/2024']
        assert text == '31/01/2024 1.000,00\n30/04/2024'
        assert confidence == 80.0
        assert words[1].left == 200.0

    def test_empty_page(self):
        words, text, confidence = words_from_tesseract_data({'text': [], 'conf': []})
        assert words == []
        assert text == ''
        assert confidence == 0.0


class TestPDFRasterizer:
    """Test cases for PDFRasterizer."""

    def setup_method(self):
        """Set up a two-page document mock."""
        self.pages = []
        for _ in range(2):
            page = Mock()
            page.to_image.return_value.original = Image.new('RGB', (90, 120), 'white')
            self.pages.append(page)
        pdf = Mock()
        pdf.pages = self.pages
        self.document = MagicMock()
        self.document.__enter__.return_value = pdf
        self.document.__exit__.return_value = False

    @patch('rate_extraction.ocr.open_document')
    def test_rasterize_pages(self, mock_open):
        """Test rendering resolution, encoding and progress."""
        mock_open.return_value = self.document
        progress = []

        pages = PDFRasterizer(scale=1.5).rasterize('scan.pdf', on_progress=progress.append)

        assert [p.page_number for p in pages] == [1, 2]
        assert pages[0].width == 90.0
        assert pages[0].height == 120.0
        assert base64.b64decode(pages[0].image_data)[:2] == b'\xff\xd8'
        self.pages[0].to_image.assert_called_once_with(resolution=108)
        assert progress == [50.0, 100.0]

    @patch('rate_extraction.ocr.open_document')
    def test_max_pages(self, mock_open):
        mock_open.return_value = self.document

        pages = PDFRasterizer().rasterize('scan.pdf', max_pages=1)

        assert len(pages) == 1
        self.pages[1].to_image.assert_not_called()

    @patch('rate_extraction.ocr.open_document')
    def test_render_failure(self, mock_open):
        """Test that a page that cannot be rendered raises with its number."""
        mock_open.return_value = self.document
        self.pages[1].to_image.side_effect = ValueError('no renderer')

        with pytest.raises(TextExtractionError) as exc_info:
            PDFRasterizer().rasterize('scan.pdf')

        assert exc_info.value.page_number == 2
        assert exc_info.value.extraction_method == 'ocr'

    @patch('rate_extraction.ocr.open_document')
    def test_cancelled_before_rendering(self, mock_open):
        mock_open.return_value = self.document
        token = CancellationToken()
        token.cancel()

        with pytest.raises(ExtractionCancelledError):
            PDFRasterizer().rasterize('scan.pdf', cancel_token=token)

        self.pages[0].to_image.assert_not_called()

    def test_decode_page_image(self):
        """Test decoding plain base64 and data URLs."""
        page = encoded_page(size=(30, 20))
        data_url = PDFPage(1, 'data:image/jpeg;base64,' + page.image_data, 30, 20)

        assert decode_page_image(page).size == (30, 20)
        assert decode_page_image(data_url).size == (30, 20)


class TestOCRWorker:
    """Test cases for OCRWorker."""

    @patch('rate_extraction.ocr.pytesseract.image_to_data')
    def test_recognize(self, mock_image_to_data):
        """Test recognition of one page."""
        mock_image_to_data.return_value = tesseract_data()
        progress = []
        worker = OCRWorker('ita+eng')

        result = worker.recognize(encoded_page(page_number=3), progress.append)

        assert isinstance(result, OCRResult)
        assert result.page_number == 3
        assert result.image_height == 40.0
        assert len(result.words) == 3
        assert progress == [0.0, 100.0]
        assert mock_image_to_data.call_args.kwargs['lang'] == 'ita+eng'
        assert mock_image_to_data.call_args.kwargs['output_type'] == pytesseract.Output.DICT

    def test_terminated_worker(self):
        worker = OCRWorker('ita')
        worker.terminate()

        with pytest.raises(OCRError):
            worker.recognize(encoded_page())


class TestOCREngine:
    """Test cases for OCREngine."""

    @patch('rate_extraction.ocr.pytesseract.get_languages')
    @patch('rate_extraction.ocr.pytesseract.get_tesseract_version')
    def test_ensure_ready_once(self, mock_version, mock_languages):
        """Test that the installation is checked only once."""
        mock_version.return_value = '5.3.0'
        mock_languages.return_value = ['eng', 'ita', 'osd']
        engine = OCREngine('ita+eng')

        engine.ensure_ready()
        engine.ensure_ready()

        assert engine.ready is True
        mock_version.assert_called_once()

        engine.reset()
        assert engine.ready is False

    @patch('rate_extraction.ocr.pytesseract.get_languages')
    @patch('rate_extraction.ocr.pytesseract.get_tesseract_version')
    def test_missing_language(self, mock_version, mock_languages):
        """Test that missing language data is an asset error."""
        mock_version.return_value = '5.3.0'
        mock_languages.return_value = ['eng']

        with pytest.raises(OCRAssetError) as exc_info:
            OCREngine('ita+eng').ensure_ready()

        assert 'ita' in str(exc_info.value)

    @patch('rate_extraction.ocr.pytesseract.get_tesseract_version')
    def test_missing_binary(self, mock_version):
        """Test that a missing tesseract binary is an asset error."""
        mock_version.side_effect = pytesseract.TesseractNotFoundError()

        with pytest.raises(OCRAssetError):
            OCREngine().ensure_ready()

    def test_worker_is_terminated(self):
        """Test that the scoped worker is released even on failure."""
        engine = OCREngine()

        with pytest.raises(RuntimeError):
            with engine.worker() as worker:
                raise RuntimeError('recognition failed')

        assert worker.terminated is True


class TestOCRProcessor:
    """Test cases for OCRProcessor."""

    def test_progress_is_reported_per_page(self):
        """Test overall progress across pages."""
        results = [OCRResult(1, 'uno', 90.0), OCRResult(2, 'due', 80.0)]
        processor = OCRProcessor(engine=mock_engine(results))
        progress = []

        recognized = processor.process_pages(
            [encoded_page(1), encoded_page(2)],
            on_progress=lambda *args: progress.append(args)
        )

        assert recognized == results
        processor.engine.ensure_ready.assert_called_once()
        assert progress == [
            (0.0, 1, 2), (50.0, 1, 2),
            (50.0, 2, 2), (100.0, 2, 2),
            (100.0, 2, 2)
        ]

    def test_page_failure_aborts(self):
        """Test that a failing page raises OCRError with its number."""
        processor = OCRProcessor(engine=mock_engine(error=RuntimeError('boom')))

        with pytest.raises(OCRError) as exc_info:
            processor.process_pages([encoded_page(1)], pdf_path='scan.pdf')

        assert 'OCR failed on page 1' in str(exc_info.value)
        assert exc_info.value.details['page_number'] == 1

    def test_tesseract_failure_is_asset_error(self):
        """Test that tesseract errors are classified as asset errors."""
        error = pytesseract.TesseractError(1, 'Failed loading language ita')
        processor = OCRProcessor(engine=mock_engine(error=error))

        with pytest.raises(OCRAssetError):
            processor.process_pages([encoded_page(1)])

    def test_cancellation_between_pages(self):
        token = CancellationToken()
        token.cancel()
        processor = OCRProcessor(engine=mock_engine([OCRResult(1, 'uno', 90.0)]))

        with pytest.raises(ExtractionCancelledError):
            processor.process_pages([encoded_page(1)], cancel_token=token)
