"""
Tests for natural-key duplicate detection and sheet cleanup

Run with: python -m pytest tests/test_duplicates.py -v
"""
from config import RECORD_COLUMNS
from duplicates import dedupe, dedupe_rows, is_duplicate, natural_key
from models import ActivationRecord, ParsedDraft

from conftest import record_row


def make_record(sn, nik, ao=""):
    return ActivationRecord(date_label="Senin, 12 Oktober 2026", ao=ao, sn_ont=sn, nik_ont=nik)


class TestIsDuplicate:
    def test_case_insensitive_match(self):
        existing = [make_record("ztegabc123", "777")]
        assert is_duplicate(existing, ParsedDraft(sn_ont="ZTEGABC123", nik_ont="777"))

    def test_symmetric(self):
        a, b = make_record("ZTEGabc123", "N1"), make_record("ztegABC123", "n1")
        assert is_duplicate([a], b) and is_duplicate([b], a)

    def test_both_fields_must_match(self):
        existing = [make_record("ZTEG1", "100"), make_record("ZTEG2", "200")]
        assert not is_duplicate(existing, ParsedDraft(sn_ont="ZTEG1", nik_ont="200"))
        assert not is_duplicate(existing, ParsedDraft(sn_ont="ZTEG3", nik_ont="100"))

    def test_empty_store(self):
        assert not is_duplicate([], ParsedDraft(sn_ont="ZTEG1", nik_ont="1"))

    def test_natural_key_trims_and_uppercases(self):
        assert natural_key(" zteg1 ", "abc") == ("ZTEG1", "ABC")


class TestDedupe:
    """Bulk cleanup keeps the first occurrence per key"""

    def test_records(self):
        records = [
            make_record("S1", "N1", ao="first"),
            make_record("s1", "n1", ao="second"),
            make_record("S2", "N2"),
            make_record("", "N3"),
        ]
        surviving, dropped = dedupe(records)

        assert [(r.sn_ont, r.nik_ont) for r in surviving] == [("S1", "N1"), ("S2", "N2")]
        assert surviving[0].ao == "first"
        assert dropped == 2

    def test_rows_keep_header_and_order(self):
        rows = [
            list(RECORD_COLUMNS),
            record_row(sn="S1", nik="N1", technician="a"),
            record_row(sn="S1", nik="N1", technician="b"),
            record_row(sn="S2", nik="N2", technician="c"),
            record_row(sn="", nik="N3", technician="d"),
            record_row(sn="S4", nik="", technician="e"),
        ]
        kept, dropped = dedupe_rows(rows)

        assert kept[0] == list(RECORD_COLUMNS)
        assert [row[11] for row in kept[1:]] == ["a", "c"]
        assert dropped == 3

    def test_rows_short_row_counts_as_missing_key(self):
        rows = [list(RECORD_COLUMNS), ["Senin, 12 Oktober 2026", "SC1"]]
        kept, dropped = dedupe_rows(rows)

        assert kept == [list(RECORD_COLUMNS)]
        assert dropped == 1

    def test_rows_empty_sheet(self):
        assert dedupe_rows([]) == ([], 0)
