"""
Minimal PDF writer for end-to-end tests.

Builds single-font (Helvetica) documents with text placed at absolute
coordinates, which is enough for pdfplumber to recover positioned words.
"""

from pathlib import Path
from typing import List, Sequence, Tuple, Union


PAGE_WIDTH = 595
PAGE_HEIGHT = 842

TextRun = Tuple[float, float, str]


def _escape(text: str) -> str:
    return text.replace('\\', '\\\\').replace('(', '\\(').replace(')', '\\)')


def _content_stream(runs: Sequence[TextRun], font_size: int) -> bytes:
    commands = [
        f"BT /F1 {font_size} Tf {x:.2f} {y:.2f} Td ({_escape(text)}) Tj ET"
        for x, y, text in runs
    ]
    return '\n'.join(commands).encode('latin-1')


def build_pdf(pages: Sequence[Sequence[TextRun]], font_size: int = 10) -> bytes:
    """
    Build a PDF document.

    Args:
        pages: For each page, (x, y, text) runs in PDF user space
        font_size: Font size for every run

    Returns:
        The document bytes
    """
    page_count = len(pages)
    font_id = 3
    first_page_id = 4
    kids = ' '.join(f"{first_page_id + 2 * i} 0 R" for i in range(page_count))

    objects: List[bytes] = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        f"<< /Type /Pages /Kids [{kids}] /Count {page_count} >>".encode('latin-1'),
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica /Encoding /WinAnsiEncoding >>",
    ]
    for index, runs in enumerate(pages):
        content_id = first_page_id + 2 * index + 1
        objects.append((
            f"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 {PAGE_WIDTH} {PAGE_HEIGHT}] "
            f"/Resources << /Font << /F1 {font_id} 0 R >> >> /Contents {content_id} 0 R >>"
        ).encode('latin-1'))
        stream = _content_stream(runs, font_size)
        objects.append(
            f"<< /Length {len(stream)} >>\nstream\n".encode('latin-1') + stream + b"\nendstream"
        )

    output = bytearray(b"%PDF-1.4\n")
    offsets = []
    for number, body in enumerate(objects, 1):
        offsets.append(len(output))
        output += f"{number} 0 obj\n".encode('latin-1') + body + b"\nendobj\n"

    xref_offset = len(output)
    output += f"xref\n0 {len(objects) + 1}\n".encode('latin-1')
    output += b"0000000000 65535 f \n"
    for offset in offsets:
        output += f"{offset:010d} 00000 n \n".encode('latin-1')
    output += (
        f"trailer\n<< /Size {len(objects) + 1} /Root 1 0 R >>\n"
        f"startxref\n{xref_offset}\n%%EOF\n"
    ).encode('latin-1')
    return bytes(output)


def write_pdf(path: Union[str, Path], pages: Sequence[Sequence[TextRun]], font_size: int = 10) -> Path:
    """Write a PDF built by build_pdf and return its path."""
    path = Path(path)
    path.write_bytes(build_pdf(pages, font_size))
    return path


def schedule_page(rows: Sequence[Tuple[int, str, str]], top: float = 700.0,
                  spacing: float = 30.0) -> List[TextRun]:
    """
    Lay out an installment table: a header line, then one line per
    (number, date, amount) row with the columns at fixed x positions.
    """
    runs: List[TextRun] = [(60, top + 40, 'Rata'), (120, top + 40, 'Scadenza'), (300, top + 40, 'Importo')]
    for index, (number, date_text, amount_text) in enumerate(rows):
        y = top - spacing * index
        runs.extend([(60, y, str(number)), (120, y, date_text), (300, y, amount_text)])
    return runs
