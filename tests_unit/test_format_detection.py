"""
Unit tests for document format detection.
"""

from rate_extraction.format_detection import (
    detect_pdf_format,
    is_format_reliable,
    FormatDetection,
    FORMAT_F24,
    FORMAT_PAGOPA,
    FORMAT_UNKNOWN
)


PAGOPA_PAGE = """
Agenzia delle Entrate-Riscossione
Piano di dilazione - Avviso di pagamento pagoPA
N. modulo pagamento  Data scadenza  Totale da pagare
1  31/01/2024  € 1.000,00
Ente creditore: Comune di Roma
"""

F24_PAGE = """
Studio del commercialista
Piano di ammortamento - versamento con modello F24
Codice tributo 8944
Rata 1  31/01/2024  1.000,00
"""


class TestDetectPdfFormat:
    """Test cases for detect_pdf_format."""

    def test_pagopa(self):
        """Test a PagoPA payment plan."""
        detection = detect_pdf_format([PAGOPA_PAGE])

        assert detection.format == FORMAT_PAGOPA
        assert detection.confidence == 1.0
        assert 'pagopa' in detection.indicators
        assert 'ente creditore' in detection.indicators
        assert is_format_reliable(detection)

    def test_f24(self):
        """Test an F24 amortisation plan."""
        detection = detect_pdf_format([F24_PAGE])

        assert detection.format == FORMAT_F24
        assert 0 < detection.confidence <= 1.0
        assert 'f24' in detection.indicators
        assert 'codice tributo' in detection.indicators

    def test_pages_are_joined(self):
        """Test that indicators on different pages add up."""
        detection = detect_pdf_format(['Avviso pagoPA', 'Ente creditore'])
        assert detection.format == FORMAT_PAGOPA

    def test_unknown(self):
        """Test text with no indicators."""
        detection = detect_pdf_format(['Lorem ipsum dolor sit amet'])

        assert detection.format == FORMAT_UNKNOWN
        assert detection.confidence == 0.0
        assert detection.indicators == []

    def test_empty(self):
        assert detect_pdf_format([]).format == FORMAT_UNKNOWN


class TestIsFormatReliable:

    def test_low_confidence(self):
        assert not is_format_reliable(FormatDetection(FORMAT_F24, 0.4, ['f24', 'versamento']))

    def test_single_indicator(self):
        assert not is_format_reliable(FormatDetection(FORMAT_F24, 0.8, ['f24']))

    def test_reliable(self):
        assert is_format_reliable(FormatDetection(FORMAT_PAGOPA, 0.6, ['pagopa', 'data scadenza']))

    def test_to_dict(self):
        detection = FormatDetection(FORMAT_F24, 0.8, ['f24'])
        assert detection.to_dict() == {'format': 'F24', 'confidence': 0.8, 'indicators': ['f24']}
