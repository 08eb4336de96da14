"""
Decode AISIS compact day/time notation.

Examples::

    "M-TH 0800-0930"                 -> Mon and Thu, 08:00:00-09:30:00
    "SAT 0800-1200; W 0800-1200"     -> two sessions
    "T-F 1400-1530 (FULLY ONSITE)"   -> Tue and Fri, delivery mode "FULLY ONSITE"
    "TBA", "TUTORIAL"                -> no segments (caller emits a placeholder)

A hyphen between day tokens means "and", never a range: ``M-TH`` is Monday
and Thursday, not Monday through Thursday.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional

logger = logging.getLogger(__name__)

# 1 = Mon ... 6 = Sat, 7 = Sun
DAY_CODES = {
    "M": 1,
    "T": 2,
    "W": 3,
    "TH": 4,
    "F": 5,
    "SAT": 6,
    "SUN": 7,
}

UNTIMED = "00:00:00"

_PAREN_RX = re.compile(r"\(([^)]+)\)")
_HHMM_RANGE_RX = re.compile(r"(\d{4})-(\d{4})")
_DAY_SPLIT_RX = re.compile(r"[-/,\s]+")


@dataclass
class TimeSegment:
    days: List[int] = field(default_factory=list)
    start_time: str = UNTIMED
    end_time: str = UNTIMED
    delivery_mode: Optional[str] = None


def placeholder_segment() -> TimeSegment:
    """Zero-duration segment for a row that exists but has no schedule."""
    return TimeSegment(days=[], start_time=UNTIMED, end_time=UNTIMED, delivery_mode=None)


def _scan_compact(token: str) -> List[str]:
    # Longest codes first: SUN/SAT, then TH, then single letters.
    out: List[str] = []
    i = 0
    while i < len(token):
        if token[i:i + 3] in ("SUN", "SAT"):
            out.append(token[i:i + 3])
            i += 3
        elif token[i:i + 2] == "TH":
            out.append("TH")
            i += 2
        elif token[i] in "MTWF":
            out.append(token[i])
            i += 1
        else:
            i += 1
    return out


def parse_day_tokens(text: str) -> List[int]:
    """Turn a day token like ``M-TH``, ``T/F`` or ``MWF`` into weekday numbers."""
    tokens = [t for t in _DAY_SPLIT_RX.split((text or "").upper()) if t]
    if len(tokens) == 1 and tokens[0] not in DAY_CODES:
        tokens = _scan_compact(tokens[0])

    days: List[int] = []
    for tok in tokens:
        d = DAY_CODES.get(tok)
        if d and d not in days:
            days.append(d)
    return days


def hhmm_to_time(hhmm: str) -> str:
    """``"0800"`` -> ``"08:00:00"``."""
    hhmm = hhmm.zfill(4)
    return f"{int(hhmm[:2]):02d}:{int(hhmm[2:4]):02d}:00"


def extract_delivery_mode(pattern: str) -> Optional[str]:
    m = _PAREN_RX.search(pattern or "")
    return m.group(1) if m else None


def is_untimed_pattern(pattern: str) -> bool:
    clean = _PAREN_RX.sub("", pattern or "").upper()
    return "TBA" in clean or "TUTORIAL" in clean


def parse_time_segments(pattern: str) -> List[TimeSegment]:
    """
    Parse a time pattern into zero or more :class:`TimeSegment`.

    The first parenthetical is the delivery mode and applies to every session.
    Sessions are separated by ``;``. A session without resolvable days or an
    ``HHMM-HHMM`` time is skipped.
    """
    delivery_mode = extract_delivery_mode(pattern)
    clean = _PAREN_RX.sub("", pattern or "").strip()

    if is_untimed_pattern(clean):
        return []

    segments: List[TimeSegment] = []
    for session in clean.split(";"):
        parts = session.split()
        if len(parts) < 2:
            continue
        days = parse_day_tokens(parts[0])
        m = _HHMM_RANGE_RX.search(parts[1])
        if not m or not days:
            logger.debug("Skipping unparseable session %r", session)
            continue
        segments.append(TimeSegment(
            days=days,
            start_time=hhmm_to_time(m.group(1)),
            end_time=hhmm_to_time(m.group(2)),
            delivery_mode=delivery_mode,
        ))
    return segments
