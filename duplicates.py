import logging
from typing import Iterable, List, Sequence, Set, Tuple, Union

from config import RECORD_COLUMNS
from models import ActivationRecord, ParsedDraft

logger = logging.getLogger(__name__)

SN_ONT_INDEX = RECORD_COLUMNS.index("SN ONT")
NIK_ONT_INDEX = RECORD_COLUMNS.index("NIK ONT")

Candidate = Union[ActivationRecord, ParsedDraft]


def natural_key(sn_ont: str, nik_ont: str) -> Tuple[str, str]:
    """Case-insensitive (SN ONT, NIK ONT) key"""
    return (sn_ont or "").strip().upper(), (nik_ont or "").strip().upper()


def is_duplicate(existing: Iterable[ActivationRecord], candidate: Candidate) -> bool:
    """True if any existing record matches the candidate on both SN ONT and NIK ONT."""
    key = natural_key(candidate.sn_ont, candidate.nik_ont)
    for record in existing:
        if natural_key(record.sn_ont, record.nik_ont) == key:
            return True
    return False


def dedupe(records: Sequence[ActivationRecord]) -> Tuple[List[ActivationRecord], int]:
    """Keep the first record per natural key; drop repeats and records missing a key field."""
    seen: Set[Tuple[str, str]] = set()
    surviving = []
    for record in records:
        key = natural_key(record.sn_ont, record.nik_ont)
        if all(key) and key not in seen:
            seen.add(key)
            surviving.append(record)
    return surviving, len(records) - len(surviving)


def _row_cell(row: Sequence[str], index: int) -> str:
    return str(row[index]) if index < len(row) else ""


def dedupe_rows(rows: Sequence[Sequence[str]]) -> Tuple[List[List[str]], int]:
    """
    Same rule as dedupe() over raw sheet rows.

    The header row is kept first; surviving data rows keep their original
    relative order. Returns the rows to write back and the dropped count.
    """
    if not rows:
        return [], 0
    header, data = list(rows[0]), rows[1:]
    seen: Set[Tuple[str, str]] = set()
    kept = [header]
    for row in data:
        key = natural_key(_row_cell(row, SN_ONT_INDEX), _row_cell(row, NIK_ONT_INDEX))
        if all(key) and key not in seen:
            seen.add(key)
            kept.append(list(row))
    dropped = len(data) - (len(kept) - 1)
    logger.info({"event": "dedupe_planned", "rows": len(data), "kept": len(kept) - 1, "dropped": dropped})
    return kept, dropped
