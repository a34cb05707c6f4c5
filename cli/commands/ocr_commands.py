"""
OCR commands for the CLI interface.

This module implements commands for scanned documents:
- ocr: Run Tesseract on the rendered pages of a PDF and print the text
- normalize: Send a PDF to the remote OCR service and save the searchable copy
"""

import logging
from pathlib import Path

import click

from cli.context import pass_context
from cli.formatters import print_success, print_info, format_json
from cli.exceptions import CLIError, ValidationError
from cli.error_handlers import handle_errors
from cli.progress import percent_progress
from cli.validators import PDF_PATH, ENDPOINT_URL, validate_directory_path, validate_endpoint_url
from rate_extraction.ocr import OCREngine, OCRProcessor, PDFRasterizer
from rate_extraction.normalize_client import normalize_pdf_via_api


logger = logging.getLogger(__name__)


@click.command()
@click.argument('pdf_path', type=PDF_PATH)
@click.option('--max-pages', type=click.IntRange(min=1), default=None,
              help='Only recognize the first N pages')
@click.option('--language', '-l', type=str, default=None,
              help='Tesseract language codes (default from configuration)')
@click.option('--format', '-f', 'output_format', type=click.Choice(['text', 'json']),
              default='text', show_default=True, help='Output format')
@click.option('--output', '-o', type=click.Path(dir_okay=False, path_type=Path),
              help='Write the recognized text to a file')
@pass_context
@handle_errors({'operation': 'ocr'})
def ocr(ctx, pdf_path, max_pages, language, output_format, output):
    """
    Recognize the text of a scanned PDF page by page.

    Examples:
        # Print the text of the first two pages
        rate-extractor ocr scansione.pdf --max-pages 2
    """
    config = ctx.get_config()
    engine = OCREngine(language=language or config.ocr_language)
    rasterizer = PDFRasterizer(scale=config.render_scale, jpeg_quality=config.jpeg_quality)
    processor = OCRProcessor(engine, rasterizer)

    engine.ensure_ready()
    pages = rasterizer.rasterize(pdf_path, max_pages=max_pages or config.max_ocr_pages or None)

    if ctx.quiet:
        results = processor.process_pages(pages, pdf_path=str(pdf_path))
    else:
        with percent_progress(label="OCR") as progress:
            results = processor.process_pages(pages, on_progress=progress, pdf_path=str(pdf_path))

    if output_format == 'json':
        text = format_json([result.to_dict() for result in results])
    else:
        text = '\n\n'.join(
            f"--- Page {result.page_number} (confidence {result.confidence:.1f}) ---\n{result.text}"
            for result in results
        )

    if output is None:
        click.echo(text)
        return

    try:
        output.write_text(text + '\n', encoding='utf-8')
    except OSError as e:
        raise CLIError(f"Cannot write output file {output}: {e}")
    if not ctx.quiet:
        print_success(f"Wrote OCR text of {len(results)} pages to {output}")


@click.command()
@click.argument('pdf_path', type=PDF_PATH)
@click.option('--endpoint', type=ENDPOINT_URL, default=None,
              help='OCR normalization endpoint (default from configuration)')
@click.option('--output-dir', type=click.Path(file_okay=False, path_type=Path), default=None,
              help='Directory for the searchable copy (default: next to the input)')
@click.option('--timeout', type=click.FloatRange(min=1), default=None,
              help='Request timeout in seconds')
@pass_context
@handle_errors({'operation': 'normalize'})
def normalize(ctx, pdf_path, endpoint, output_dir, timeout):
    """
    Turn a scanned PDF into a searchable PDF with the remote OCR service.

    The result is saved as <name>_searchable.pdf.
    """
    config = ctx.get_config()
    endpoint = endpoint or config.normalize_endpoint
    if not endpoint:
        raise ValidationError(
            "No normalization endpoint: pass --endpoint or set normalize_endpoint"
        )
    endpoint = validate_endpoint_url(endpoint)
    if output_dir is not None:
        output_dir = validate_directory_path(output_dir, create_if_missing=True)

    if not ctx.quiet:
        print_info(f"Uploading {pdf_path.name} to {endpoint}...")
    saved = normalize_pdf_via_api(
        pdf_path, endpoint,
        timeout=timeout or config.normalize_timeout,
        output_dir=output_dir
    )
    logger.info(f"Searchable copy saved to {saved}")
    if not ctx.quiet:
        print_success(f"Searchable PDF saved to {saved}")
    else:
        click.echo(str(saved))
