"""
Euro amount reconstruction.

Amounts in Italian notation ("2.461,33") are often split into several text
runs ("2.461," + "33" + "€"). The stitcher rebuilds them from the tokens to
the right of a date anchor.
"""

import math
import re
from typing import Optional, Sequence

from .dates import sanitize_digits
from .models import PositionedToken


AMOUNT_AT_END_PATTERN = re.compile(r'\d{1,3}(?:\.\d{3})*,\d{2}$')
AMOUNT_PATTERN = re.compile(r'(\d{1,3}(?:\.\d{3})*),(\d{2})')
AMOUNT_EXACT_PATTERN = re.compile(r'^(\d{1,3}(?:\.\d{3})*),(\d{2})$')


def _clean(text: str) -> str:
    return sanitize_digits(text.replace('€', ''))


def stitch_amount_right_of(tokens: Sequence[PositionedToken], anchor: PositionedToken,
                           tolerance: float, max_window: int = 5) -> Optional[str]:
    """
    Rebuild the amount printed to the right of ``anchor``.

    The band holds every token strictly right of the anchor whose y is within
    ``tolerance`` of the anchor's y. Windows of ``max_window`` down to 1
    adjacent band tokens are joined without spaces; the first window whose
    cleaned text ends with an Italian amount wins, so multi-token
    reconstructions are preferred over partial matches. The first amount
    inside that window is returned.

    Args:
        tokens: All tokens of the page
        anchor: Last token of a located date
        tolerance: Vertical band half-height
        max_window: Widest window tried

    Returns:
        The amount as "intPart,decPart", or None when the band has none
    """
    band = sorted(
        (t for t in tokens if t.x > anchor.x and abs(t.y - anchor.y) <= tolerance),
        key=lambda t: t.x
    )

    for size in range(min(max_window, len(band)), 0, -1):
        for start in range(0, len(band) - size + 1):
            joined = _clean(''.join(t.text for t in band[start:start + size]))
            if AMOUNT_AT_END_PATTERN.search(joined):
                match = AMOUNT_PATTERN.search(joined)
                return f"{match.group(1)},{match.group(2)}"
    return None


def euros_to_number(text: str) -> float:
    """
    Parse an Italian euro amount.

    "2.461,33" becomes 2461.33. Thousands dots are removed and the decimal
    comma becomes a point. Returns ``nan`` when the text is not an amount.
    """
    if not text:
        return math.nan
    match = AMOUNT_EXACT_PATTERN.match(_clean(text))
    if not match:
        return math.nan
    return float(f"{match.group(1).replace('.', '')}.{match.group(2)}")


def format_euro(value: float) -> str:
    """Format a number in Italian notation, e.g. 2461.33 -> "2.461,33"."""
    text = f"{value:,.2f}"
    return text.replace(',', '\x00').replace('.', ',').replace('\x00', '.')
