import base64
import binascii
import json
from typing import Any, Dict, List, Optional, Sequence
from urllib.parse import quote

import requests
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import AuthorizedSession
from google.oauth2 import service_account
from tenacity import retry, stop_after_attempt, wait_exponential

from config import CONFIG, RECORD_COLUMNS, RECORD_RANGE_LAST_COLUMN
from errors import StoreUnavailable
from models import ActivationRecord, UserRecord, normalize_handle, records_from_rows
from utils import log_event, split_message


SHEETS_API = "https://sheets.googleapis.com/v4/spreadsheets"
SHEETS_SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]
TELEGRAM_API = "https://api.telegram.org"


def load_service_account_info(raw_key: str) -> Dict[str, Any]:
    """Service account JSON, given either as raw JSON or base64-encoded JSON."""
    key = (raw_key or "").strip()
    if not key.startswith("{"):
        try:
            key = base64.b64decode(key).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError):
            log_event("service_account_not_base64")
    return json.loads(key)


def sheet_range(sheet: str, range_spec: Optional[str] = None) -> str:
    quoted = "'" + sheet.replace("'", "''") + "'"
    return f"{quoted}!{range_spec}" if range_spec else quoted


# --- Google Sheets ---
class SheetsClient:
    """Row-oriented access to one spreadsheet through the Sheets v4 REST API."""

    def __init__(self, spreadsheet_id: str, session: requests.Session, timeout: int = None):
        self.spreadsheet_id = spreadsheet_id
        self.session = session
        self.timeout = timeout or CONFIG["SHEETS_TIMEOUT"]

    @classmethod
    def from_service_account(cls, spreadsheet_id: str, raw_key: str) -> "SheetsClient":
        credentials = service_account.Credentials.from_service_account_info(
            load_service_account_info(raw_key), scopes=SHEETS_SCOPES
        )
        return cls(spreadsheet_id, AuthorizedSession(credentials))

    def _request(self, method: str, a1_range: str, suffix: str = "", **kwargs) -> Dict[str, Any]:
        url = f"{SHEETS_API}/{self.spreadsheet_id}/values/{quote(a1_range, safe='')}{suffix}"
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
            response.raise_for_status()
            return response.json() if response.content else {}
        except (requests.RequestException, GoogleAuthError, ValueError) as e:
            log_event("sheets_request_failed", method=method, range=a1_range, error=str(e))
            raise StoreUnavailable(str(e)) from e

    def read_all(self, sheet: str) -> List[List[str]]:
        """All rows of a sheet, header first; trailing blank rows are omitted by the API."""
        data = self._request("GET", sheet_range(sheet))
        return data.get("values", [])

    def append(self, sheet: str, row: Sequence[str]) -> None:
        self._request(
            "POST", sheet_range(sheet), ":append",
            params={"valueInputOption": "USER_ENTERED", "insertDataOption": "INSERT_ROWS"},
            json={"values": [list(row)]},
        )
        log_event("sheet_row_appended", sheet=sheet)

    def replace_range(self, sheet: str, range_spec: str, rows: Sequence[Sequence[str]]) -> None:
        a1_range = sheet_range(sheet, range_spec)
        self._request(
            "PUT", a1_range,
            params={"valueInputOption": "USER_ENTERED"},
            json={"range": a1_range, "majorDimension": "ROWS", "values": [list(row) for row in rows]},
        )
        log_event("sheet_range_replaced", sheet=sheet, range=range_spec, rows=len(rows))


class RecordStore:
    """The activation sheet, read and written as ActivationRecord rows."""

    def __init__(self, client: SheetsClient, sheet: str = None):
        self.client = client
        self.sheet = sheet or CONFIG["RECORD_SHEET"]

    def read_rows(self) -> List[List[str]]:
        return self.client.read_all(self.sheet)

    def read_records(self) -> List[ActivationRecord]:
        return records_from_rows(self.read_rows())

    def append_record(self, record: ActivationRecord) -> None:
        self.client.append(self.sheet, record.to_row())

    def rewrite(self, rows: Sequence[Sequence[str]], previous_row_count: int) -> None:
        """
        Replace the table from A1 with rows.

        Rows that existed before but are not rewritten get blank cells, so no
        stale data survives below the new last row.
        """
        width = len(RECORD_COLUMNS)
        padded = [list(row)[:width] + [""] * (width - len(row)) for row in rows]
        padded += [[""] * width for _ in range(max(0, previous_row_count - len(rows)))]
        if not padded:
            return
        self.client.replace_range(self.sheet, f"A1:{RECORD_RANGE_LAST_COLUMN}{len(padded)}", padded)


class UserDirectory:
    """Operator lookups against the user sheet; read fresh on every call."""

    def __init__(self, client: SheetsClient, sheet: str = None):
        self.client = client
        self.sheet = sheet or CONFIG["USER_SHEET"]

    def find_active(self, handle: str) -> Optional[UserRecord]:
        target = normalize_handle(handle)
        if not target:
            return None
        for row in self.client.read_all(self.sheet)[1:]:
            user = UserRecord.from_row(row, handle=handle)
            if normalize_handle(user.label) == target and user.is_active:
                return user
        return None

    def is_admin(self, handle: str) -> bool:
        user = self.find_active(handle)
        return bool(user and user.is_admin)


# --- Telegram API ---
class TelegramMessenger:
    """Reply channel; long texts are split on line boundaries before sending."""

    def __init__(self, token: str, timeout: int = None):
        self.base_url = f"{TELEGRAM_API}/bot{token}"
        self.timeout = timeout or CONFIG["TELEGRAM_TIMEOUT"]

    @retry(stop=stop_after_attempt(3), wait=wait_exponential(min=4, max=10))
    def _send_chunk(self, chat_id: str, text: str, reply_to: Optional[int] = None) -> Dict[str, Any]:
        payload = {"chat_id": chat_id, "text": text, "parse_mode": "HTML"}
        if reply_to:
            payload["reply_to_message_id"] = reply_to
        response = requests.post(f"{self.base_url}/sendMessage", json=payload, timeout=self.timeout)

        # If HTML fails, send without formatting
        if response.status_code == 400 and "can't parse entities" in response.text.lower():
            log_event("html_parsing_error", chat_id=chat_id)
            payload.pop("parse_mode", None)
            response = requests.post(f"{self.base_url}/sendMessage", json=payload, timeout=self.timeout)

        response.raise_for_status()
        log_event("message_sent", chat_id=chat_id, text=text[:50])
        return response.json()

    def send_message(self, chat_id: str, text: str, reply_to: Optional[int] = None) -> None:
        for chunk in split_message(text):
            self._send_chunk(chat_id, chunk, reply_to)

    @retry(stop=stop_after_attempt(3), wait=wait_exponential(min=4, max=10))
    def send_document(self, chat_id: str, filename: str, content: bytes,
                      caption: Optional[str] = None, reply_to: Optional[int] = None) -> Dict[str, Any]:
        data = {"chat_id": chat_id}
        if caption:
            data["caption"] = caption
        if reply_to:
            data["reply_to_message_id"] = reply_to
        response = requests.post(
            f"{self.base_url}/sendDocument",
            data=data,
            files={"document": (filename, content, "text/csv")},
            timeout=self.timeout,
        )
        response.raise_for_status()
        log_event("document_sent", chat_id=chat_id, filename=filename, size=len(content))
        return response.json()
