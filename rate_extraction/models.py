"""
Data models for extracted installment schedules.

This module defines the data structures used across the extraction pipeline,
from positioned text tokens on a PDF page up to the final installment rows
and the result returned by the extraction orchestrator.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import List, Optional, Dict, Any


@dataclass(frozen=True)
class PositionedToken:
    """
    One text run on a PDF page.

    Attributes:
        text: Raw glyph run (may be a partial word or number)
        x: Baseline origin x in PDF user space
        y: Baseline origin y in PDF user space (grows upward)
        width: Run width
        height: Run height
    """
    text: str
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        """Convert token to dictionary for serialization."""
        return {
            'text': self.text,
            'x': self.x,
            'y': self.y,
            'width': self.width,
            'height': self.height
        }


@dataclass
class TextLine:
    """Tokens sharing an approximate y coordinate, sorted left to right."""
    y: float
    tokens: List[PositionedToken] = field(default_factory=list)

    @property
    def text(self) -> str:
        """Line text with tokens joined by a single space."""
        return ' '.join(' '.join(t.text for t in self.tokens).split())


@dataclass(frozen=True)
class DateCandidate:
    """
    A day/month/year pattern located within a line.

    Attributes:
        anchor: Last token of the matched window, the amount search starts here
        day: Two-digit day
        month: Two-digit month
        year: Year as captured
    """
    anchor: PositionedToken
    day: str
    month: str
    year: str

    @property
    def scadenza(self) -> str:
        """Due date formatted as DD-MM-YYYY."""
        return f"{self.day}-{self.month}-{self.year}"


@dataclass
class Rata:
    """
    One row of an extracted installment schedule.

    Attributes:
        scadenza: Due date, format DD-MM-YYYY
        totale_euro: Amount in euros
        year: Due year
        seq: Optional sequence number
        synthetic: True when the row was inferred by the schedule repairer
    """
    scadenza: str
    totale_euro: float
    year: int
    seq: Optional[int] = None
    synthetic: bool = False

    @property
    def sort_key(self) -> str:
        """YYYYMMDD comparison key rebuilt from the DD-MM-YYYY due date."""
        return ''.join(reversed(self.scadenza.split('-')))

    @property
    def due_date(self) -> date:
        """Due date as a date object."""
        return datetime.strptime(self.scadenza, '%d-%m-%Y').date()

    def to_dict(self) -> Dict[str, Any]:
        """Convert the row to the external {scadenza, totaleEuro, year} shape."""
        data = {
            'scadenza': self.scadenza,
            'totaleEuro': self.totale_euro,
            'year': self.year
        }
        if self.seq is not None:
            data['seq'] = self.seq
        if self.synthetic:
            data['synthetic'] = True
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Rata':
        """Create a Rata from its dictionary form."""
        scadenza = data['scadenza']
        amount = data.get('totaleEuro', data.get('totale_euro', data.get('amount')))
        year = data.get('year') or int(scadenza.split('-')[-1])
        return cls(
            scadenza=scadenza,
            totale_euro=float(amount),
            year=int(year),
            seq=data.get('seq'),
            synthetic=bool(data.get('synthetic', False))
        )


@dataclass(frozen=True)
class OCRWord:
    """A word recognized by the OCR engine, in image coordinates (y grows downward)."""
    text: str
    left: float
    top: float
    width: float
    height: float
    confidence: float = 0.0


@dataclass
class OCRResult:
    """
    OCR output for one page.

    Attributes:
        page_number: 1-based page number
        text: Concatenated recognized text
        confidence: Mean engine confidence (0-100)
        words: Recognized words with their boxes, when the engine provides them
        image_height: Height of the recognized image in pixels
    """
    page_number: int
    text: str
    confidence: float
    words: List[OCRWord] = field(default_factory=list)
    image_height: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        """Convert OCR result to dictionary for serialization."""
        return {
            'page_number': self.page_number,
            'text': self.text,
            'confidence': self.confidence,
            'word_count': len(self.words)
        }


@dataclass
class PDFPage:
    """A rasterized PDF page (base64 JPEG) ready for OCR."""
    page_number: int
    image_data: str
    width: float
    height: float


@dataclass
class DuplicateDate:
    """A due date detected more than once; the later row replaced the earlier one."""
    scadenza: str
    previous: float
    replacement: float
    page_number: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'scadenza': self.scadenza,
            'previous': self.previous,
            'replacement': self.replacement,
            'page_number': self.page_number
        }


@dataclass
class ExtractionResult:
    """
    Complete outcome of a schedule extraction.

    Attributes:
        rows: Installments in ascending chronological order
        method: Path that produced the rows ('text', 'ocr', 'merged', 'normalized' or 'none')
        page_count: Pages in the source document
        duplicates: Dates that were overwritten during assembly
        diagnostics: Human readable notes for manual review
        repaired: True when the gap repairer inserted a row
        pdf_path: Source document
        format_detection: Detected document format, when probed
    """
    rows: List[Rata] = field(default_factory=list)
    method: str = 'none'
    page_count: int = 0
    duplicates: List[DuplicateDate] = field(default_factory=list)
    diagnostics: List[str] = field(default_factory=list)
    repaired: bool = False
    pdf_path: Optional[str] = None
    format_detection: Optional[Any] = None

    def add_diagnostic(self, note: str):
        """Add a diagnostic note."""
        self.diagnostics.append(note)

    @property
    def total_amount(self) -> float:
        return round(sum(row.totale_euro for row in self.rows), 2)

    def to_dict(self) -> Dict[str, Any]:
        """Convert extraction result to dictionary for serialization."""
        data = {
            'pdf_path': self.pdf_path,
            'method': self.method,
            'page_count': self.page_count,
            'repaired': self.repaired,
            'row_count': len(self.rows),
            'total_amount': self.total_amount,
            'rows': [row.to_dict() for row in self.rows],
            'duplicates': [dup.to_dict() for dup in self.duplicates],
            'diagnostics': self.diagnostics
        }
        if self.format_detection is not None:
            data['format'] = self.format_detection.to_dict()
        return data
