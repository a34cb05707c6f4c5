"""
Token geometry and line grouping.

Turns page text runs (pdfplumber words, pdf.js-style items or OCR words) into
PositionedToken objects and clusters them into visual text lines.
"""

from typing import List, Iterable, Mapping, Any, Sequence

from .models import PositionedToken, TextLine, OCRWord


# Vertical gap between synthetic lines built from plain text. It has to exceed
# any tolerance used by the line grouper or the amount stitcher.
PLAIN_TEXT_LINE_SPACING = 100.0


def _number(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def tokens_from_text_items(items: Iterable[Mapping[str, Any]]) -> List[PositionedToken]:
    """
    Convert text content items into positioned tokens.

    Each item carries its text under ``str`` (or ``text``), a six-entry affine
    ``transform`` whose translation gives the baseline origin, and optional
    ``width``/``height``. Missing coordinates default to 0 and empty strings
    are kept.

    Args:
        items: Text content items for one page

    Returns:
        Tokens in the same order as the items
    """
    tokens = []
    for item in items:
        text = item.get('str', item.get('text', ''))
        transform = item.get('transform') or ()
        x = _number(transform[4]) if len(transform) > 4 else 0.0
        y = _number(transform[5]) if len(transform) > 5 else 0.0
        tokens.append(PositionedToken(
            text='' if text is None else str(text),
            x=x,
            y=y,
            width=_number(item.get('width', 0)),
            height=_number(item.get('height', 0))
        ))
    return tokens


def page_text_items(page) -> List[dict]:
    """
    Build text content items from a pdfplumber page.

    pdfplumber measures ``bottom`` from the top of the page, so the baseline
    is flipped to PDF user space (y grows upward).
    """
    items = []
    page_height = float(page.height)
    for word in page.extract_words():
        x0 = float(word['x0'])
        bottom = float(word['bottom'])
        items.append({
            'str': word['text'],
            'transform': [1, 0, 0, 1, x0, page_height - bottom],
            'width': float(word['x1']) - x0,
            'height': bottom - float(word['top'])
        })
    return items


def tokens_from_ocr_words(words: Sequence[OCRWord], image_height: float) -> List[PositionedToken]:
    """
    Convert OCR words (image coordinates) into tokens.

    The token y is the vertical centre of the word box flipped so that it
    grows upward, matching the vector path.
    """
    tokens = []
    for word in words:
        centre = word.top + word.height / 2.0
        tokens.append(PositionedToken(
            text=word.text,
            x=float(word.left),
            y=float(image_height) - centre,
            width=float(word.width),
            height=float(word.height)
        ))
    return tokens


def tokens_from_plain_text(text: str) -> List[PositionedToken]:
    """
    Build synthetic tokens for OCR text that carries no geometry.

    Each whitespace-separated chunk becomes a token whose x is its character
    offset within the line. Lines are stacked top to bottom with a spacing
    wide enough that no tolerance band spans two lines.
    """
    tokens = []
    lines = (text or '').splitlines()
    for index, line in enumerate(lines):
        y = (len(lines) - index) * PLAIN_TEXT_LINE_SPACING
        offset = 0
        for chunk in line.split():
            offset = line.index(chunk, offset)
            tokens.append(PositionedToken(
                text=chunk,
                x=float(offset),
                y=y,
                width=float(len(chunk)),
                height=10.0
            ))
            offset += len(chunk)
    return tokens


def group_lines(tokens: Iterable[PositionedToken], tolerance: float = 2.0) -> List[TextLine]:
    """
    Cluster tokens into text lines by vertical proximity.

    Tokens are visited in reading order. A token joins the first line whose
    seed y is within ``tolerance``; otherwise it seeds a new line. Lines are
    never merged afterwards. The result is ordered top of page first
    (descending y) with each line's tokens ordered left to right.

    Args:
        tokens: Tokens for one page
        tolerance: Maximum vertical distance to a line seed

    Returns:
        Ordered list of TextLine
    """
    lines: List[TextLine] = []
    for token in tokens:
        for line in lines:
            if abs(line.y - token.y) <= tolerance:
                line.tokens.append(token)
                break
        else:
            lines.append(TextLine(y=token.y, tokens=[token]))

    lines.sort(key=lambda line: line.y, reverse=True)
    for line in lines:
        line.tokens.sort(key=lambda t: t.x)
    return lines
