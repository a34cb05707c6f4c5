"""
End-to-End Tests for Schedule Extraction

This test suite runs the text layer pipeline without any mocking. Each test
writes real PDF files with tests_e2e.pdf_builder into its own temporary
directory, opens them with pdfplumber and cleans up afterwards. OCR is
disabled so the suite does not need a Tesseract installation.

Test Coverage:
- Rate table extraction across pages, skipping header and totals lines
- Amounts split over several text runs
- Gap repair of a schedule with one missing installment
- Text layer probing and format detection
- CLI extract, probe and repair commands
- Error handling for corrupt PDFs
"""

import csv
import json
import shutil
import tempfile
import unittest
import uuid
from pathlib import Path

from click.testing import CliRunner

from cli.main import cli
from cli.exceptions import ProcessingError
from rate_extraction.config import ExtractionConfig
from rate_extraction.exceptions import RateExtractionError
from rate_extraction.format_detection import FORMAT_PAGOPA
from rate_extraction.pipeline import ScheduleExtractionPipeline, PROFILE_PAGOPA
from rate_extraction.rate_table import RateTableExtractor
from rate_extraction.text_layer import has_text_layer, extract_page_texts
from tests_e2e.pdf_builder import write_pdf, schedule_page


QUARTERLY = [
    '31/01/2024', '30/04/2024', '31/07/2024', '31/10/2024', '31/01/2025',
    '30/04/2025', '31/07/2025', '31/10/2025', '31/01/2026', '30/04/2026',
]


def numbered(dates, amount='1.000,00', start=1):
    return [(number, date_text, amount) for number, date_text in enumerate(dates, start)]


class TestScheduleExtraction(unittest.TestCase):
    """
    End-to-end tests for text layer extraction on generated PDFs.
    """

    def setUp(self):
        """Create a unique temporary directory for this test."""
        self.test_id = str(uuid.uuid4())[:8]
        self.temp_dir = Path(tempfile.mkdtemp(prefix=f"e2e_schedule_test_{self.test_id}_"))
        self.config = ExtractionConfig(ocr_enabled=False)

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def _write_schedule_pdf(self, dates, name='piano.pdf', totals=True):
        """Two pages of five rows each, with a totals line at the end."""
        first = schedule_page(numbered(dates[:5]))
        second = schedule_page(numbered(dates[5:], start=6))
        if totals:
            second.extend([(60, 400, 'TOTALE COMPLESSIVAMENTE DOVUTO'), (300, 400, '31/12/2026'),
                           (400, 400, '10.000,00')])
        return write_pdf(self.temp_dir / name, [first, second])

    def test_extracts_ten_installments(self):
        """Test a complete two-page schedule through pdfplumber."""
        pdf_path = self._write_schedule_pdf(QUARTERLY, totals=False)

        result = RateTableExtractor(self.config).extract(pdf_path)

        self.assertEqual(result.method, 'text')
        self.assertEqual(result.page_count, 2)
        self.assertEqual([row.scadenza for row in result.rows], [d.replace('/', '-') for d in QUARTERLY])
        self.assertTrue(all(row.totale_euro == 1000.0 for row in result.rows))
        self.assertEqual(result.rows[-1].year, 2026)
        self.assertEqual(result.diagnostics, [])

    def test_totals_line_is_ignored(self):
        """Test that the date and amount on the totals line are not a row."""
        pdf_path = self._write_schedule_pdf(QUARTERLY)

        result = RateTableExtractor(self.config).extract(pdf_path)

        scadenze = [row.scadenza for row in result.rows]
        self.assertEqual(len(scadenze), 10)
        self.assertNotIn('31-12-2026', scadenze)

    def test_split_amount(self):
        """Test an amount printed as two separate text runs."""
        runs = [(120, 700, '31/01/2024'), (300, 700, '2.461,'), (340, 700, '33')]
        pdf_path = write_pdf(self.temp_dir / 'split.pdf', [runs])

        result = RateTableExtractor(self.config).extract(pdf_path)

        self.assertEqual(len(result.rows), 1)
        self.assertEqual(result.rows[0].totale_euro, 2461.33)

    def test_pipeline_repairs_missing_installment(self):
        """Test that a schedule with one lost row is completed."""
        dates = [d for d in QUARTERLY if d != '31/10/2024']
        first = schedule_page(numbered(dates[:5]))
        second = schedule_page(numbered(dates[5:], start=6))
        pdf_path = write_pdf(self.temp_dir / 'nove.pdf', [first, second])

        result = ScheduleExtractionPipeline(self.config).extract(pdf_path)

        self.assertEqual(len(result.rows), 10)
        self.assertTrue(result.repaired)
        synthetic = [row for row in result.rows if row.synthetic]
        self.assertEqual([row.scadenza for row in synthetic], ['31-10-2024'])
        self.assertEqual(synthetic[0].totale_euro, 1000.0)

    def test_pagopa_header_is_skipped(self):
        """Test the PagoPA profile on a payment plan with its column header."""
        runs = [
            (60, 780, 'Avviso di pagamento pagoPA'),
            (60, 760, 'Data scadenza 01/01/2024'),
            (300, 760, '500,00'),
        ] + schedule_page(numbered(QUARTERLY[:3]))
        pdf_path = write_pdf(self.temp_dir / 'avviso.pdf', [runs])
        pipeline = ScheduleExtractionPipeline(self.config)

        pagopa = pipeline.extract(pdf_path, PROFILE_PAGOPA)
        adr = pipeline.extract(pdf_path)

        self.assertEqual([row.scadenza for row in pagopa.rows], ['31-01-2024', '30-04-2024', '31-07-2024'])
        self.assertEqual(adr.rows[0].scadenza, '01-01-2024')
        self.assertEqual(len(adr.rows), 4)

    def test_probe_and_format_detection(self):
        runs = [(60, 760, 'Avviso di pagamento pagoPA'), (60, 740, 'Ente creditore Comune di Roma')]
        pdf_path = write_pdf(self.temp_dir / 'avviso.pdf', [runs])

        self.assertTrue(has_text_layer(pdf_path))
        texts = extract_page_texts(pdf_path)
        self.assertIn('pagoPA', texts[0])

    def test_scanned_pdf_without_ocr(self):
        """Test a PDF without text when OCR is disabled."""
        pdf_path = write_pdf(self.temp_dir / 'scansione.pdf', [[]])

        self.assertFalse(has_text_layer(pdf_path))
        result = ScheduleExtractionPipeline(self.config).extract(pdf_path)

        self.assertEqual(result.rows, [])
        self.assertEqual(result.method, 'none')
        self.assertIn('No text layer found', result.diagnostics)

    def test_corrupt_pdf(self):
        pdf_path = self.temp_dir / 'rotto.pdf'
        pdf_path.write_bytes(b'this is not a pdf document')

        with self.assertRaises(RateExtractionError):
            ScheduleExtractionPipeline(self.config).extract(pdf_path)


class TestCommandLine(unittest.TestCase):
    """
    End-to-end tests for the CLI commands on generated PDFs.
    """

    def setUp(self):
        self.temp_dir = Path(tempfile.mkdtemp(prefix="e2e_cli_test_"))
        self.runner = CliRunner()
        self.pdf_path = write_pdf(self.temp_dir / 'piano.pdf', [
            schedule_page(numbered(QUARTERLY[:5])),
            schedule_page(numbered(QUARTERLY[5:], start=6)),
        ])

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_extract_then_repair(self):
        """Test extracting to CSV, dropping a row and repairing the file."""
        csv_path = self.temp_dir / 'rate.csv'
        result = self.runner.invoke(cli, ['-q', 'extract', str(self.pdf_path), '--no-ocr',
                                          '-f', 'csv', '-o', str(csv_path)])
        self.assertEqual(result.exit_code, 0, result.output)

        with open(csv_path, newline='', encoding='utf-8') as f:
            rows = list(csv.DictReader(f))
        self.assertEqual(len(rows), 10)
        self.assertEqual(rows[0], {'scadenza': '31-01-2024', 'totaleEuro': '1000.0', 'year': '2024'})

        with open(csv_path, 'w', newline='', encoding='utf-8') as f:
            writer = csv.DictWriter(f, fieldnames=['scadenza', 'totaleEuro', 'year'])
            writer.writeheader()
            writer.writerows(row for row in rows if row['scadenza'] != '31-10-2024')

        result = self.runner.invoke(cli, ['-q', 'repair', str(csv_path), '-f', 'json'])

        self.assertEqual(result.exit_code, 0, result.output)
        repaired = json.loads(result.output)
        self.assertEqual(len(repaired), 10)
        self.assertEqual(repaired[3], {'scadenza': '31-10-2024', 'totaleEuro': 1000.0,
                                       'year': 2024, 'synthetic': True})

    def test_extract_json(self):
        result = self.runner.invoke(cli, ['-q', 'extract', str(self.pdf_path), '--no-ocr', '-f', 'json'])

        self.assertEqual(result.exit_code, 0, result.output)
        rows = json.loads(result.output)
        self.assertEqual(len(rows), 10)
        self.assertEqual(rows[9]['scadenza'], '30-04-2026')

    def test_probe(self):
        pdf_path = write_pdf(self.temp_dir / 'avviso.pdf', [[
            (60, 760, 'Avviso di pagamento pagoPA'),
            (60, 740, 'Ente creditore Comune di Roma'),
        ]])

        result = self.runner.invoke(cli, ['-q', 'probe', str(pdf_path), '-f', 'json'])

        self.assertEqual(result.exit_code, 0, result.output)
        report = json.loads(result.output)
        self.assertTrue(report['text_layer'])
        self.assertEqual(report['format'], FORMAT_PAGOPA)

    def test_corrupt_pdf(self):
        pdf_path = self.temp_dir / 'rotto.pdf'
        pdf_path.write_bytes(b'this is not a pdf document')

        result = self.runner.invoke(cli, ['extract', str(pdf_path), '--no-ocr'])

        self.assertIsInstance(result.exception, ProcessingError)
