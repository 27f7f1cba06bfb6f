from __future__ import annotations

import re
from typing import Any, Dict, Iterable, List, Mapping, Tuple

from modules.exchange_reconciliation.core.money import to_minor_units

PAIR_RE = re.compile(r"([0-9.]+)\s*(?:x|\*)\s*(-?[0-9]+)")
MAX_DENOMS = 40

DenominationCount = Dict[int, int]


def count_total(notes: Mapping[int, int]) -> int:
    """Sum of face value times count, in the same minor units as the faces."""
    return sum(face * count for face, count in notes.items())


def _parse_count(raw: Any) -> Tuple[int | None, str | None]:
    if isinstance(raw, bool):
        return None, "Note counts must be whole numbers."
    if isinstance(raw, int):
        count = raw
    else:
        text = str(raw).strip()
        if not re.fullmatch(r"-?\d+", text):
            return None, "Note counts must be whole numbers."
        count = int(text)
    if count < 0:
        return None, "Note counts cannot be negative."
    return count, None


def _iter_pairs(raw: Any) -> Iterable[Tuple[Any, Any]] | None:
    if isinstance(raw, Mapping):
        return list(raw.items())
    if isinstance(raw, str):
        pairs: List[Tuple[str, str]] = []
        for chunk in re.split(r"[,;\n]", raw):
            item = chunk.strip()
            if not item:
                continue
            if ":" in item:
                left, right = item.split(":", 1)
                pairs.append((left, right))
                continue
            match = PAIR_RE.fullmatch(item)
            if not match:
                return None
            pairs.append((match.group(1), match.group(2)))
        return pairs
    return None


def parse_notes(raw: Any, *, decimals: int) -> Tuple[DenominationCount | None, str | None]:
    """Turn form input into a DenominationCount keyed by minor-unit face value.

    Accepts ``{"1000": 2, "500": "1"}`` or ``"1000:2, 500:1"``. Zero counts
    are dropped; repeated faces are added together.
    """
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return {}, None

    pairs = _iter_pairs(raw)
    if pairs is None:
        return None, "Enter notes as value:count pairs."

    notes: DenominationCount = {}
    for face_raw, count_raw in pairs:
        face, error = to_minor_units(face_raw, decimals, label="Denomination")
        if error or face is None:
            return None, error
        if face <= 0:
            return None, "Denominations must be positive."
        count, error = _parse_count(count_raw)
        if error or count is None:
            return None, error
        if count:
            notes[face] = notes.get(face, 0) + count

    if len(notes) > MAX_DENOMS:
        return None, f"Too many denominations (limit {MAX_DENOMS})."
    return notes, None


def breakdown(amount: int, faces: Iterable[int]) -> Tuple[DenominationCount, int]:
    """Greedy note breakdown of ``amount``; returns (notes, remainder)."""
    remainder = max(amount, 0)
    notes: DenominationCount = {}
    for face in sorted({f for f in faces if f > 0}, reverse=True):
        count = remainder // face
        if count:
            notes[face] = count
            remainder -= face * count
    return notes, remainder


__all__ = ["DenominationCount", "count_total", "parse_notes", "breakdown"]
