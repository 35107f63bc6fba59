from dataclasses import dataclass, fields
from typing import List, Optional, Sequence

from config import RECORD_COLUMNS, USER_COLUMNS, ROLE_ADMIN, STATUS_ACTIVE


def normalize_handle(handle: Optional[str]) -> str:
    """Lowercase a chat handle and drop the leading @"""
    return (handle or "").strip().replace("@", "").lower()


def _cell(row: Sequence[str], index: int) -> str:
    return str(row[index]).strip() if index < len(row) and row[index] is not None else ""


@dataclass(frozen=True)
class UserRecord:
    """One operator row from the user sheet"""
    handle: str
    name: str = ""
    label: str = ""
    role: str = ""
    status: str = ""

    @classmethod
    def from_row(cls, row: Sequence[str], handle: str = "") -> "UserRecord":
        label = _cell(row, USER_COLUMNS["handle"])
        return cls(
            handle=handle or label,
            name=_cell(row, USER_COLUMNS["name"]),
            label=label,
            role=_cell(row, USER_COLUMNS["role"]),
            status=_cell(row, USER_COLUMNS["status"]),
        )

    @property
    def technician_label(self) -> str:
        return self.label or self.handle

    @property
    def is_active(self) -> bool:
        return self.status.upper() == STATUS_ACTIVE

    @property
    def is_admin(self) -> bool:
        return self.is_active and self.role.upper() == ROLE_ADMIN


@dataclass
class ParsedDraft:
    """Parser output before validation; any field may be empty"""
    ao: str = ""
    workorder: str = ""
    service_no: str = ""
    customer_name: str = ""
    owner: str = ""
    workzone: str = ""
    sn_ont: str = ""
    nik_ont: str = ""
    stb_id: str = ""
    nik_stb: str = ""
    technician: str = ""


# Draft attribute order matches RECORD_COLUMNS[1:]
DRAFT_FIELDS = [f.name for f in fields(ParsedDraft)]


@dataclass(frozen=True)
class ActivationRecord:
    """One persisted activation row"""
    date_label: str = ""
    ao: str = ""
    workorder: str = ""
    service_no: str = ""
    customer_name: str = ""
    owner: str = ""
    workzone: str = ""
    sn_ont: str = ""
    nik_ont: str = ""
    stb_id: str = ""
    nik_stb: str = ""
    technician: str = ""

    @classmethod
    def from_draft(cls, draft: ParsedDraft, date_label: str) -> "ActivationRecord":
        return cls(date_label=date_label, **{name: getattr(draft, name) for name in DRAFT_FIELDS})

    @classmethod
    def from_row(cls, row: Sequence[str]) -> "ActivationRecord":
        """Build from a sheet row; short rows are padded with empty cells"""
        return cls(*[_cell(row, index) for index in range(len(RECORD_COLUMNS))])

    def to_row(self) -> List[str]:
        return [getattr(self, f.name) for f in fields(self)]


def records_from_rows(rows: Sequence[Sequence[str]]) -> List[ActivationRecord]:
    """Convert sheet rows (header first) into records"""
    return [ActivationRecord.from_row(row) for row in rows[1:] if any(str(cell).strip() for cell in row)]
