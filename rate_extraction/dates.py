"""
Due date location and Italian date parsing.

The locator scans grouped text lines for day/month/year patterns that may be
split across several tokens and mangled by OCR. The parsing helpers convert
free-form Italian dates into ISO strings.
"""

import logging
import re
from datetime import datetime
from typing import List, Optional, Sequence, Iterable, Pattern, Union

from .models import TextLine, DateCandidate


logger = logging.getLogger(__name__)

TOTALS_LINE_PATTERN = re.compile(r'TOTALE\s+COMPLESSIVAMENT[EA]\s+DOVUT[OA]', re.IGNORECASE)

PAGOPA_HEADER_PATTERN = re.compile(
    r'n\.\s*modulo\s*pagamento|data\s*scadenza|totale\s*da\s*pagare',
    re.IGNORECASE
)

NUMERIC_DATE_PATTERN = re.compile(r'(?<!\d)(\d{1,2})[-/.](\d{1,2})[-/.](\d{4})(?!\d)')

ITALIAN_MONTHS = {
    'gen': '01', 'gennaio': '01',
    'feb': '02', 'febbraio': '02',
    'mar': '03', 'marzo': '03',
    'apr': '04', 'aprile': '04',
    'mag': '05', 'maggio': '05',
    'giu': '06', 'giugno': '06',
    'lug': '07', 'luglio': '07',
    'ago': '08', 'agosto': '08',
    'set': '09', 'settembre': '09',
    'ott': '10', 'ottobre': '10',
    'nov': '11', 'novembre': '11',
    'dic': '12', 'dicembre': '12',
}

# Longest names first so "marzo" wins over "mar"
_MONTH_ALTERNATION = '|'.join(sorted(ITALIAN_MONTHS, key=len, reverse=True))

MONTH_NAME_DATE_PATTERN = re.compile(
    rf'(?<!\d)(\d{{1,2}})\s*({_MONTH_ALTERNATION})\.?\s*(\d{{4}})(?!\d)'
)

_ISO_DATE_PATTERN = re.compile(r'^\d{4}-\d{2}-\d{2}$')

_OCR_DIGIT_FIXES = str.maketrans({'l': '1', 'I': '1', 'O': '0', 'S': '5', 'B': '8', '·': ','})

# Runs of digits, separators and letters OCR confuses with digits
_NUMERIC_RUN_PATTERN = re.compile(r'[\dlIOSB.,/·-]+')


def _fix_numeric_run(match) -> str:
    run = match.group()
    if not any(char.isdigit() for char in run):
        return run
    return run.translate(_OCR_DIGIT_FIXES)


def sanitize_digits(text: str) -> str:
    """
    Correct common OCR character confusions and drop whitespace.

    Letters are only replaced inside runs that already hold a digit, so
    words such as "Scadenza" or "SOLO" pass through unchanged.
    """
    return re.sub(r'\s+', '', _NUMERIC_RUN_PATTERN.sub(_fix_numeric_run, text))


def _match_window(joined: str):
    """Return (day, month, year) found in a joined token window, or None."""
    match = NUMERIC_DATE_PATTERN.search(sanitize_digits(joined))
    if match:
        return match.group(1), match.group(2), match.group(3)

    match = MONTH_NAME_DATE_PATTERN.search(joined.lower())
    if match:
        return match.group(1), ITALIAN_MONTHS[match.group(2)], match.group(3)

    return None


def find_date_candidates(lines: Iterable[TextLine],
                         skip_patterns: Sequence[Union[str, Pattern]] = (),
                         max_window: int = 6) -> List[DateCandidate]:
    """
    Locate due dates in grouped text lines.

    Lines matching the totals boilerplate, or any of ``skip_patterns``, are
    ignored. For the rest, windows of 1 to ``max_window`` adjacent tokens are
    joined without spaces and tested after OCR correction. The first match
    from a window start records a candidate anchored at the window's last
    token, and scanning resumes after that window.

    Args:
        lines: Lines produced by group_lines
        skip_patterns: Extra line patterns to ignore
        max_window: Largest number of tokens joined into one window

    Returns:
        Date candidates in line order
    """
    extra = [re.compile(p, re.IGNORECASE) if isinstance(p, str) else p for p in skip_patterns]
    candidates = []

    for line in lines:
        text = line.text
        if TOTALS_LINE_PATTERN.search(text):
            logger.debug(f"Skipping totals line: {text}")
            continue
        if any(p.search(text) for p in extra):
            logger.debug(f"Skipping header line: {text}")
            continue

        tokens = line.tokens
        i = 0
        while i < len(tokens):
            for size in range(1, max_window + 1):
                if i + size > len(tokens):
                    break
                window = tokens[i:i + size]
                found = _match_window(''.join(t.text for t in window))
                if found:
                    day, month, year = found
                    candidates.append(DateCandidate(
                        anchor=window[-1],
                        day=day.zfill(2),
                        month=month.zfill(2),
                        year=year
                    ))
                    i += size - 1
                    break
            i += 1

    return candidates


def normalize_date(day: str, month: str, year: str) -> str:
    """Format date parts as DD-MM-YYYY."""
    return f"{str(day).zfill(2)}-{str(month).zfill(2)}-{year}"


def _expand_year(year: str) -> str:
    return f"20{year}" if len(year) == 2 else year


def parse_italian_date_to_iso(text: str) -> Optional[str]:
    """
    Find an Italian date in free text and return it as YYYY-MM-DD.

    Handles 02/11/2024, 02-11-2024, 02.11.2024, two-digit years (24 becomes
    2024) and month names such as "2 nov 2024" or "2 novembre 2024". Letters
    commonly misread by OCR (O, l, I) are corrected first.
    """
    if not text:
        return None

    lowered = re.sub(r'\s+', ' ', text.lower()).strip()
    clean = re.sub(r'(?<=\d)o|o(?=\d)', '0', lowered)
    clean = re.sub(r'(?<=\d)[il]|[il](?=\d)', '1', clean)

    match = re.search(r'(?<!\d)(\d{1,2})\s*[-/.]\s*(\d{1,2})\s*[-/.]\s*(\d{2}|\d{4})(?!\d)', clean)
    if match:
        day, month, year = match.groups()
        return f"{_expand_year(year)}-{month.zfill(2)}-{day.zfill(2)}"

    # Month names are matched before digit correction, which would alter them
    match = re.search(
        rf'(?<!\d)(\d{{1,2}})\s*({_MONTH_ALTERNATION})\.?\s*(\d{{2}}|\d{{4}})(?!\d)',
        lowered
    )
    if match:
        day, month_name, year = match.groups()
        return f"{_expand_year(year)}-{ITALIAN_MONTHS[month_name]}-{day.zfill(2)}"

    return None


def is_valid_iso_date(value: Optional[str]) -> bool:
    """True for a YYYY-MM-DD string naming a real calendar day."""
    if not value or not _ISO_DATE_PATTERN.match(value):
        return False
    try:
        datetime.strptime(value, '%Y-%m-%d')
    except ValueError:
        return False
    return True


def format_iso_to_italian(value: str) -> str:
    """Convert YYYY-MM-DD to DD-MM-YYYY; other input is returned unchanged."""
    if not is_valid_iso_date(value):
        return value or ''
    year, month, day = value.split('-')
    return f"{day}-{month}-{year}"
