"""
Unit tests for the remote OCR normalization client.
"""

from unittest.mock import Mock, patch

import pytest
import requests

from rate_extraction.exceptions import (
    PDFReadabilityError,
    OCRAssetError,
    OCRNormalizationError
)
from rate_extraction.normalize_client import normalize_pdf_via_api, searchable_name


ENDPOINT = 'https://ocr.example.test/normalize'


def pdf_response(content=b'%PDF-1.7 searchable', status_code=200, content_type='application/pdf'):
    response = Mock()
    response.ok = 200 <= status_code < 400
    response.status_code = status_code
    response.headers = {'Content-Type': content_type}
    response.content = content
    response.text = content.decode('latin-1')
    return response


class TestSearchableName:

    def test_pdf_suffix_is_replaced(self):
        assert searchable_name('/tmp/piano.pdf') == 'piano_searchable.pdf'
        assert searchable_name('SCAN.PDF') == 'SCAN_searchable.pdf'

    def test_other_names(self):
        assert searchable_name('scan') == 'scan_searchable.pdf'


class TestNormalizePdfViaApi:
    """Test cases for normalize_pdf_via_api."""

    def setup_method(self):
        """Set up a fake HTTP session."""
        self.session = Mock()

    def make_pdf(self, tmp_path):
        pdf_file = tmp_path / 'scan.pdf'
        pdf_file.write_bytes(b'%PDF-1.4 scanned')
        return pdf_file

    def test_searchable_copy_is_saved(self, tmp_path):
        """Test the upload and the saved result."""
        pdf_file = self.make_pdf(tmp_path)
        self.session.post.return_value = pdf_response()

        saved = normalize_pdf_via_api(pdf_file, ENDPOINT, timeout=30, session=self.session)

        assert saved == tmp_path / 'scan_searchable.pdf'
        assert saved.read_bytes() == b'%PDF-1.7 searchable'
        args, kwargs = self.session.post.call_args
        assert args == (ENDPOINT,)
        assert kwargs['timeout'] == 30
        name, _, mime = kwargs['files']['file']
        assert name == 'scan.pdf'
        assert mime == 'application/pdf'

    def test_output_dir(self, tmp_path):
        pdf_file = self.make_pdf(tmp_path)
        self.session.post.return_value = pdf_response()

        saved = normalize_pdf_via_api(pdf_file, ENDPOINT, output_dir=tmp_path / 'out',
                                      session=self.session)

        assert saved == tmp_path / 'out' / 'scan_searchable.pdf'
        assert saved.exists()

    def test_unwritable_output_dir(self, tmp_path):
        """Test that a save failure is reported as a normalization error."""
        pdf_file = self.make_pdf(tmp_path)
        blocker = tmp_path / 'out'
        blocker.write_text('not a directory')
        self.session.post.return_value = pdf_response()

        with pytest.raises(OCRNormalizationError) as exc_info:
            normalize_pdf_via_api(pdf_file, ENDPOINT, output_dir=blocker, session=self.session)

        assert 'Cannot save normalized copy' in str(exc_info.value)
        assert exc_info.value.pdf_path == str(pdf_file)
        assert isinstance(exc_info.value.__cause__, OSError)

    def test_server_error(self, tmp_path):
        """Test that a rejected document raises OCRNormalizationError with the server text."""
        pdf_file = self.make_pdf(tmp_path)
        self.session.post.return_value = pdf_response(b'ocrmypdf failed', status_code=500,
                                                      content_type='text/plain')

        with pytest.raises(OCRNormalizationError) as exc_info:
            normalize_pdf_via_api(pdf_file, ENDPOINT, session=self.session)

        assert exc_info.value.status_code == 500
        assert 'OCR normalization failed: ocrmypdf failed' in str(exc_info.value)
        assert not (tmp_path / 'scan_searchable.pdf').exists()

    def test_unexpected_content_type(self, tmp_path):
        pdf_file = self.make_pdf(tmp_path)
        self.session.post.return_value = pdf_response(b'{"ok": true}', content_type='application/json')

        with pytest.raises(OCRNormalizationError):
            normalize_pdf_via_api(pdf_file, ENDPOINT, session=self.session)

    def test_network_error(self, tmp_path):
        """Test that connection failures are asset errors, not document errors."""
        pdf_file = self.make_pdf(tmp_path)
        self.session.post.side_effect = requests.exceptions.ConnectionError('refused')

        with pytest.raises(OCRAssetError) as exc_info:
            normalize_pdf_via_api(pdf_file, ENDPOINT, session=self.session)

        assert 'Network error' in str(exc_info.value)

    def test_missing_file(self, tmp_path):
        with pytest.raises(PDFReadabilityError):
            normalize_pdf_via_api(tmp_path / 'missing.pdf', ENDPOINT, session=self.session)
        self.session.post.assert_not_called()

    def test_missing_endpoint(self, tmp_path):
        pdf_file = self.make_pdf(tmp_path)

        with pytest.raises(OCRNormalizationError):
            normalize_pdf_via_api(pdf_file, '', session=self.session)

    @patch('rate_extraction.normalize_client.requests.post')
    def test_default_transport(self, mock_post, tmp_path):
        """Test that requests is used when no session is given."""
        pdf_file = self.make_pdf(tmp_path)
        mock_post.return_value = pdf_response()

        normalize_pdf_via_api(pdf_file, ENDPOINT)

        mock_post.assert_called_once()
