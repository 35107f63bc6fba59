import csv
import io
from datetime import date
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from config import CONFIG, MISSING_VALUE, RECORD_COLUMNS, REPORT_TOP_N
from models import ActivationRecord, ParsedDraft, normalize_handle
from periods import PERIOD_TITLES, Period, describe_window
from utils import escape, format_timestamp

Ranking = List[Tuple[str, int]]


class GroupKey(Enum):
    TECHNICIAN = "technician"
    OWNER = "owner"
    WORKZONE = "workzone"


def group_label(record: ActivationRecord, key: GroupKey) -> str:
    value = getattr(record, key.value).strip()
    return value.upper() if value else MISSING_VALUE


def aggregate(records: Iterable[ActivationRecord], key: GroupKey) -> Ranking:
    """
    Count records per uppercased group value, highest count first.

    Ties keep the order in which the groups were first seen; sorted() is
    stable and dicts preserve insertion order.
    """
    counts: Dict[str, int] = {}
    for record in records:
        label = group_label(record, key)
        counts[label] = counts.get(label, 0) + 1
    return sorted(counts.items(), key=lambda item: item[1], reverse=True)


def top_n(ranking: Ranking, size: Optional[int]) -> Ranking:
    """Slice an already sorted ranking"""
    return ranking if size is None else ranking[:size]


def records_for_technician(records: Iterable[ActivationRecord], handle: str) -> List[ActivationRecord]:
    target = normalize_handle(handle)
    return [record for record in records if normalize_handle(record.technician) == target]


def records_matching_technician(records: Iterable[ActivationRecord], fragment: str) -> List[ActivationRecord]:
    needle = (fragment or "").strip().lower()
    return [record for record in records if needle in record.technician.lower()]


def records_with_sn(records: Iterable[ActivationRecord], sn_ont: str) -> List[ActivationRecord]:
    target = sn_ont.strip().upper()
    return [record for record in records if record.sn_ont.upper() == target]


def count_with_nik(records: Iterable[ActivationRecord], nik_ont: str) -> int:
    target = nik_ont.strip().upper()
    return sum(1 for record in records if record.nik_ont.upper() == target)


# --- Text reports ---
def _ranked_lines(ranking: Ranking, numbered: bool = True, unit: str = "") -> List[str]:
    suffix = f" {unit}" if unit else ""
    if numbered:
        return [f"{rank}. {escape(label)}: {count}{suffix}" for rank, (label, count) in enumerate(ranking, start=1)]
    return [f"- {escape(label)}: {count}{suffix}" for label, count in ranking]


def format_period_report(records: Sequence[ActivationRecord], period: Period,
                         anchor: Optional[date] = None) -> str:
    """Totals, metrics, then technician, workzone and owner rankings for one period."""
    title = PERIOD_TITLES[period]
    size = REPORT_TOP_N[period.value]
    technicians = aggregate(records, GroupKey.TECHNICIAN)
    workzones = aggregate(records, GroupKey.WORKZONE)
    owners = aggregate(records, GroupKey.OWNER)

    lines = [
        f"📊 <b>LAPORAN AKTIVASI {title}</b>",
        f"Periode: {describe_window(period, anchor)}",
        f"Total Aktivasi: {len(records)} SSL",
        "",
    ]
    if not records:
        lines += ["⚠️ Belum ada data aktivasi untuk periode ini.", ""]
    else:
        lines += [
            "METRICS:",
            f"- Teknisi Aktif: {len(technicians)}",
            f"- Workzone Tercover: {len(workzones)}",
            f"- Owner: {len(owners)}",
            "",
            f"PERFORMA TEKNISI (TOP {size}):",
            *_ranked_lines(top_n(technicians, size), unit="SSL"),
            "",
            "PERFORMA WORKZONE:",
            *_ranked_lines(top_n(workzones, size), unit="SSL"),
            "",
            "PERFORMA OWNER:",
            *_ranked_lines(owners, unit="SSL"),
            "",
        ]
    lines += [f"DATA SOURCE: {escape(CONFIG['RECORD_SHEET'])}", f"GENERATED: {format_timestamp()}"]
    return "\n".join(lines)


def format_summary_report(records: Sequence[ActivationRecord]) -> str:
    """All-time totals by owner and workzone plus the top technicians."""
    lines = [
        "📊 <b>RINGKASAN AKTIVASI TOTAL</b>",
        f"TOTAL KESELURUHAN: {len(records)} SSL",
        "",
        "BERDASARKAN OWNER:",
        *_ranked_lines(aggregate(records, GroupKey.OWNER), numbered=False),
        "",
        "BERDASARKAN SEKTOR/WORKZONE:",
        *_ranked_lines(aggregate(records, GroupKey.WORKZONE), numbered=False),
        "",
        "TOP TEKNISI:",
        *_ranked_lines(top_n(aggregate(records, GroupKey.TECHNICIAN), REPORT_TOP_N["summary"])),
    ]
    return "\n".join(lines)


def format_technician_report(records: Sequence[ActivationRecord], title: str, who: str) -> str:
    lines = [
        f"📊 <b>{escape(title)}</b>",
        f"👤 Teknisi: {escape(who)}",
        f"📈 Total Aktivasi: {len(records)} SSL",
        "",
    ]
    if not records:
        lines.append("⚠️ Belum ada data aktivasi yang tercatat.")
    else:
        lines += [
            "DETAIL PER OWNER:",
            *_ranked_lines(aggregate(records, GroupKey.OWNER), numbered=False),
            "",
            "DETAIL PER WORKZONE:",
            *_ranked_lines(aggregate(records, GroupKey.WORKZONE), numbered=False),
        ]
    lines += ["", f"Updated: {format_timestamp()}"]
    return "\n".join(lines)


def format_sn_search(records: Sequence[ActivationRecord], sn_ont: str) -> str:
    if not records:
        return f"SN <b>{escape(sn_ont)}</b> tidak ditemukan."
    lines = [f"📄 <b>Data SN {escape(sn_ont)}:</b>"]
    for record in records:
        lines.append(
            f"Tgl: {escape(record.date_label)}, AO: {escape(record.ao or MISSING_VALUE)}, "
            f"Teknisi: {escape(record.technician or MISSING_VALUE)}, Workzone: {escape(record.workzone or MISSING_VALUE)}"
        )
    return "\n".join(lines)


def format_nik_count(nik_ont: str, count: int) -> str:
    return f"NIK <b>{escape(nik_ont)}</b> ditemukan pada <b>{count}</b> data."


def _field_lines(draft) -> List[str]:
    return [
        f"AO: {escape(draft.ao or MISSING_VALUE)}",
        f"Workorder: {escape(draft.workorder or MISSING_VALUE)}",
        f"Service No: {escape(draft.service_no or MISSING_VALUE)}",
        f"Customer: {escape(draft.customer_name or MISSING_VALUE)}",
        f"Owner: {escape(draft.owner or MISSING_VALUE)}",
        f"Workzone: {escape(draft.workzone or MISSING_VALUE)}",
        f"SN ONT: {escape(draft.sn_ont or MISSING_VALUE)}",
        f"NIK ONT: {escape(draft.nik_ont or MISSING_VALUE)}",
        f"STB ID: {escape(draft.stb_id or MISSING_VALUE)}",
        f"NIK STB: {escape(draft.nik_stb or MISSING_VALUE)}",
        f"Teknisi: {escape(draft.technician or MISSING_VALUE)}",
    ]


def format_saved_confirmation(record: ActivationRecord) -> str:
    lines = ["✅ Data berhasil disimpan ke sheet, GASPOLLL 🚀🚀!", "", "<b>Data yang tersimpan:</b>"]
    return "\n".join(lines + _field_lines(record))


def format_parse_preview(dialect_name: str, draft: ParsedDraft, missing: List[str]) -> str:
    lines = ["🧪 <b>Hasil parsing (tidak disimpan)</b>", f"Format: {escape(dialect_name)}", ""]
    lines += _field_lines(draft)
    if missing:
        lines += ["", f"⚠️ Field wajib kosong: {', '.join(missing)}"]
    return "\n".join(lines)


# --- CSV export ---
def to_csv(records: Iterable[ActivationRecord], delimiter: str = ",") -> str:
    """Header line then one CRLF-terminated line per record, quoting only fields that need it."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, delimiter=delimiter, quoting=csv.QUOTE_MINIMAL)
    writer.writerow(RECORD_COLUMNS)
    for record in records:
        writer.writerow(record.to_row())
    return buffer.getvalue()
