"""
Document format detection.

Scores the text of a document against phrases typical of PagoPA payment
plans (Agenzia delle Entrate-Riscossione) and F24 amortisation plans.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import List, Iterable, Dict, Any


logger = logging.getLogger(__name__)

FORMAT_F24 = 'F24'
FORMAT_PAGOPA = 'PAGOPA'
FORMAT_UNKNOWN = 'UNKNOWN'

PAGOPA_INDICATORS = [
    'agenzia delle entrate',
    'agenzia entrate-riscossione',
    'ader',
    'pagopa',
    'n. modulo pagamento',
    'data scadenza',
    'totale da pagare',
    'importo debito da pagare',
    'interessi di dilazione',
    'codice avviso',
    'ente creditore',
    'piano di dilazione',
    'rateazione',
    'rata numero',
    'scadenza rata',
    'importo rata',
    'avviso di pagamento',
    'codice fiscale ente',
    'piano pagamento',
    'dilazione pagamento',
    'modulo pagamento',
    'importo debito',
    'interessi',
]

F24_INDICATORS = [
    'piano di ammortamento',
    'piano di pagamento',
    'f24',
    'commercialista',
    'gestionale',
    'versamento',
    'codice tributo',
    'rata numero',
]

# (pattern, bonus)
PAGOPA_BONUS_PATTERNS = [
    (re.compile(r'rata\s*\d+\s*di\s*\d+'), 2),
    (re.compile(r'\d{2}/\d{2}/\d{4}.*€'), 2),
    (re.compile(r'modulo.*scadenza.*importo'), 3),
    (re.compile(r'importo.*debito.*interessi'), 2),
    (re.compile(r'ente\s*creditore'), 2),
    (re.compile(r'dilazione.*pagamento'), 2),
]

F24_BONUS_PATTERNS = [
    (re.compile(r'rata\s+\d+'), 2),
    (re.compile(r'\d{2}/\d{2}/\d{4}.*\d{1,3}\.\d{3},\d{2}'), 2),
]

PAGOPA_SCORE_SCALE = 8
F24_SCORE_SCALE = 5
MIN_SCORE = 2


@dataclass
class FormatDetection:
    """
    Outcome of format detection.

    Attributes:
        format: 'F24', 'PAGOPA' or 'UNKNOWN'
        confidence: 0.0 to 1.0
        indicators: Indicator phrases found in the text
    """
    format: str = FORMAT_UNKNOWN
    confidence: float = 0.0
    indicators: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'format': self.format,
            'confidence': self.confidence,
            'indicators': list(self.indicators)
        }


def _score(text: str, indicators: List[str], bonuses) -> int:
    score = sum(1 for indicator in indicators if indicator in text)
    score += sum(bonus for pattern, bonus in bonuses if pattern.search(text))
    return score


def detect_pdf_format(page_texts: Iterable[str]) -> FormatDetection:
    """
    Detect whether a document is a PagoPA or an F24 installment plan.

    Args:
        page_texts: Plain text of each page

    Returns:
        FormatDetection (UNKNOWN when neither score wins with at least 2 points)
    """
    text = ' '.join(page_texts).lower()

    pagopa_score = _score(text, PAGOPA_INDICATORS, PAGOPA_BONUS_PATTERNS)
    f24_score = _score(text, F24_INDICATORS, F24_BONUS_PATTERNS)
    logger.debug(f"Format scores: PagoPA {pagopa_score}, F24 {f24_score}")

    if pagopa_score > f24_score and pagopa_score >= MIN_SCORE:
        return FormatDetection(
            format=FORMAT_PAGOPA,
            confidence=min(pagopa_score / PAGOPA_SCORE_SCALE, 1.0),
            indicators=[i for i in PAGOPA_INDICATORS if i in text]
        )

    if f24_score > pagopa_score and f24_score >= MIN_SCORE:
        return FormatDetection(
            format=FORMAT_F24,
            confidence=min(f24_score / F24_SCORE_SCALE, 1.0),
            indicators=[i for i in F24_INDICATORS if i in text]
        )

    return FormatDetection()


def is_format_reliable(detection: FormatDetection) -> bool:
    """True when confidence is at least 0.6 and two or more indicators were found."""
    return detection.confidence >= 0.6 and len(detection.indicators) >= 2
