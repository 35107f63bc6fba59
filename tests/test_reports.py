"""
Tests for aggregation, report text and CSV export

Run with: python -m pytest tests/test_reports.py -v
"""
import csv
import io
from datetime import date

from config import RECORD_COLUMNS
from models import ActivationRecord
from periods import Period
from reports import (GroupKey, aggregate, count_with_nik, format_period_report, format_summary_report,
                     format_technician_report, records_for_technician, records_matching_technician,
                     records_with_sn, to_csv, top_n)


def by_technician(*names):
    return [ActivationRecord(technician=name, sn_ont=f"SN{i}", nik_ont="1") for i, name in enumerate(names)]


class TestAggregate:
    def test_descending_counts(self):
        ranking = aggregate(by_technician("A", "A", "B", "C", "C", "C"), GroupKey.TECHNICIAN)
        assert ranking == [("C", 3), ("A", 2), ("B", 1)]

    def test_ties_keep_first_seen_order(self):
        ranking = aggregate(by_technician("B", "A", "C", "A", "B", "D"), GroupKey.TECHNICIAN)
        assert ranking == [("B", 2), ("A", 2), ("C", 1), ("D", 1)]

    def test_uppercases_and_fills_blanks(self):
        records = [ActivationRecord(owner="bges"), ActivationRecord(owner="BGES"), ActivationRecord(owner=" ")]
        assert aggregate(records, GroupKey.OWNER) == [("BGES", 2), ("-", 1)]

    def test_top_n_after_sorting(self):
        ranking = aggregate(by_technician("A", "B", "C", "C", "D", "D", "D"), GroupKey.TECHNICIAN)
        assert top_n(ranking, 2) == [("D", 3), ("C", 2)]
        assert top_n(ranking, None) == ranking


class TestSelections:
    def test_technician_handle_ignores_at_and_case(self):
        records = by_technician("@Budi", "budi", "budiman", "sari")
        assert len(records_for_technician(records, "BUDI")) == 2

    def test_technician_fragment(self):
        records = by_technician("@Budi", "budiman", "sari")
        assert len(records_matching_technician(records, "bud")) == 2

    def test_sn_and_nik(self):
        records = [ActivationRecord(sn_ont="ZTEG1", nik_ont="77"), ActivationRecord(sn_ont="zteg1", nik_ont="88")]
        assert len(records_with_sn(records, "Zteg1")) == 2
        assert count_with_nik(records, "77") == 1


class TestTextReports:
    def test_period_report_section_order(self):
        records = [
            ActivationRecord(technician="budi", workzone="KLN", owner="BGES"),
            ActivationRecord(technician="sari", workzone="KLN", owner="WMS"),
            ActivationRecord(technician="budi", workzone="BJM", owner="BGES"),
        ]
        text = format_period_report(records, Period.WEEKLY, date(2026, 10, 14))

        assert "LAPORAN AKTIVASI MINGGUAN" in text
        assert "Senin, 12 Oktober 2026 s/d Minggu, 18 Oktober 2026" in text
        assert "Total Aktivasi: 3 SSL" in text
        assert "- Teknisi Aktif: 2" in text
        assert "1. BUDI: 2 SSL" in text
        positions = [text.index(s) for s in ("PERFORMA TEKNISI", "PERFORMA WORKZONE", "PERFORMA OWNER")]
        assert positions == sorted(positions)

    def test_period_report_empty(self):
        text = format_period_report([], Period.DAILY, date(2026, 10, 14))

        assert "Total Aktivasi: 0 SSL" in text
        assert "Belum ada data" in text
        assert "PERFORMA TEKNISI" not in text

    def test_summary_top_five_technicians(self):
        records = by_technician(*[f"t{i}" for i in range(8)])
        text = format_summary_report(records)
        top_section = text.split("TOP TEKNISI:")[1]

        assert "TOTAL KESELURUHAN: 8 SSL" in text
        assert top_section.count("\n") == 5

    def test_values_are_html_escaped(self):
        text = format_technician_report(by_technician("<b>x"), "STATISTIK", "<b>x")
        assert "&lt;b&gt;x" in text
        assert "<b>x" not in text


class TestCsv:
    def test_header_and_column_order(self):
        record = ActivationRecord("Senin, 12 Oktober 2026", "SC1", "SC1", "0211", "PT A", "BGES",
                                  "KLN", "ZTEG1", "77", "", "", "budi")
        lines = to_csv([record]).splitlines()

        assert lines[0] == ",".join(RECORD_COLUMNS)
        assert lines[1] == '"Senin, 12 Oktober 2026",SC1,SC1,0211,PT A,BGES,KLN,ZTEG1,77,,,budi'

    def test_round_trip_with_comma_quote_and_newline(self):
        tricky = 'PT "Maju", Jaya\nCabang 2'
        record = ActivationRecord(customer_name=tricky, sn_ont="ZTEG1", nik_ont="1")
        rows = list(csv.reader(io.StringIO(to_csv([record]))))

        assert len(rows) == 2
        assert rows[1][RECORD_COLUMNS.index("CUSTOMER NAME")] == tricky

    def test_bare_carriage_return_is_quoted(self):
        record = ActivationRecord(customer_name="PT A\rCabang", sn_ont="ZTEG1", nik_ont="1")
        content = to_csv([record])
        rows = list(csv.reader(io.StringIO(content)))

        assert '"PT A\rCabang"' in content
        assert len(rows) == 2
        assert rows[1][RECORD_COLUMNS.index("CUSTOMER NAME")] == "PT A\rCabang"

    def test_quotes_are_doubled(self):
        content = to_csv([ActivationRecord(customer_name='say "hi"')])
        assert '"say ""hi"""' in content

    def test_empty_export_has_header_only(self):
        assert to_csv([]) == ",".join(RECORD_COLUMNS) + "\r\n"
