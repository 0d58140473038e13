# controlboard/services/frequency.py
from __future__ import annotations

import logging
import re
from typing import Optional

from controlboard.core.exceptions import InvalidFrequency
from controlboard.schemas.compliance import Cadence

log = logging.getLogger("controlboard.frequency")

# Controlled vocabulary (catalog keys, legacy import keys, pt-BR labels)
FREQUENCY_KEYS = {
    "monthly": Cadence.MONTHLY,
    "mensal": Cadence.MONTHLY,
    "weekly": Cadence.MONTHLY,
    "semanal": Cadence.MONTHLY,
    "daily": Cadence.MONTHLY,
    "diario": Cadence.MONTHLY,
    "diário": Cadence.MONTHLY,
    "quarterly": Cadence.QUARTERLY,
    "trimestral": Cadence.QUARTERLY,
    "semiannual": Cadence.SEMIANNUAL,
    "semestral": Cadence.SEMIANNUAL,
    "annual": Cadence.ANNUAL,
    "yearly": Cadence.ANNUAL,
    "anual": Cadence.ANNUAL,
    "on_demand": Cadence.ON_DEMAND,
    "sob_demanda": Cadence.ON_DEMAND,
}

# Order matters: "semestral" must not fall into the "seman" (week) bucket,
# "semiannual" must hit semiannual before "annual". "anual" is word-initial so
# "manual" and "January" stay out of the annual bucket.
_PATTERNS = (
    (re.compile(r"tri|quarter|\bq[1-4]\b"), Cadence.QUARTERLY),
    (re.compile(r"seme|semi|half"), Cadence.SEMIANNUAL),
    (re.compile(r"\banual|annual|year"), Cadence.ANNUAL),
    (re.compile(r"demand|ad[\s_-]?hoc"), Cadence.ON_DEMAND),
    (re.compile(r"mens|month"), Cadence.MONTHLY),
    (re.compile(r"seman|week|\bwk\b"), Cadence.MONTHLY),
    (re.compile(r"diar|day|\bd\b"), Cadence.MONTHLY),
)


def _norm(s: Optional[str]) -> str:
    return (s or "").strip().lower()


def _key(s: str) -> str:
    return re.sub(r"[\s-]+", "_", s)


def normalize_frequency(raw: Optional[str], frequency_key: Optional[str] = None) -> Cadence:
    """
    Map catalog frequency text to a Cadence.

      1. a valid stored `frequency_key` wins
      2. exact key match against the controlled vocabulary
      3. substring patterns (pt/en)
      4. anything else → monthly (logged as a warning, never raised)
    """
    key = _key(_norm(frequency_key))
    if key in FREQUENCY_KEYS:
        return FREQUENCY_KEYS[key]

    text = _norm(raw)
    if _key(text) in FREQUENCY_KEYS:
        return FREQUENCY_KEYS[_key(text)]

    for pattern, cadence in _PATTERNS:
        if pattern.search(text):
            return cadence

    err = InvalidFrequency(raw)
    log.warning("%s", err.message)
    return Cadence.MONTHLY
