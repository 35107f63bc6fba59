"""Shared fixtures: in-memory sheets and a recording messenger."""
from typing import Dict, List

import pytest

from config import RECORD_COLUMNS
from handlers import CommandRouter, IncomingMessage
from services import RecordStore, UserDirectory

USER_HEADER = ["NAMA", "USERNAME", "ROLE", "STATUS"]


class FakeSheetsClient:
    """Stands in for SheetsClient; keeps each sheet as a list of rows."""

    def __init__(self, sheets: Dict[str, List[List[str]]] = None):
        self.sheets = sheets or {}
        self.calls = []

    def read_all(self, sheet):
        self.calls.append(("read_all", sheet))
        return [list(row) for row in self.sheets.get(sheet, [])]

    def append(self, sheet, row):
        self.calls.append(("append", sheet))
        self.sheets.setdefault(sheet, []).append(list(row))

    def replace_range(self, sheet, range_spec, rows):
        self.calls.append(("replace_range", sheet, range_spec))
        current = self.sheets.setdefault(sheet, [])
        for index, row in enumerate(rows):
            if index < len(current):
                current[index] = list(row)
            else:
                current.append(list(row))


class FakeMessenger:
    def __init__(self):
        self.messages = []
        self.documents = []

    def send_message(self, chat_id, text, reply_to=None):
        self.messages.append({"chat_id": chat_id, "text": text, "reply_to": reply_to})

    def send_document(self, chat_id, filename, content, caption=None, reply_to=None):
        self.documents.append({"chat_id": chat_id, "filename": filename, "content": content, "caption": caption})

    @property
    def last_text(self):
        return self.messages[-1]["text"] if self.messages else None


def record_row(date_label="Senin, 12 Oktober 2026", sn="ZTEG0001", nik="1001", technician="budi",
               owner="BGES", workzone="KLN", ao="SC1000001"):
    return [date_label, ao, ao, "", "", owner, workzone, sn, nik, "", "", technician]


@pytest.fixture
def sheets():
    return FakeSheetsClient({
        "REKAPAN QUALITY": [list(RECORD_COLUMNS)],
        "USER": [
            USER_HEADER,
            ["Budi Santoso", "budi", "TEKNISI", "AKTIF"],
            ["Sari Admin", "@sari", "ADMIN", "AKTIF"],
            ["Old Hand", "lama", "TEKNISI", "NONAKTIF"],
        ],
    })


@pytest.fixture
def messenger():
    return FakeMessenger()


@pytest.fixture
def router(sheets, messenger):
    return CommandRouter(
        records=RecordStore(sheets, "REKAPAN QUALITY"),
        users=UserDirectory(sheets, "USER"),
        messenger=messenger,
    )


@pytest.fixture
def send(router):
    """Send a chat message through the router"""
    def _send(text, username="budi", chat_type="private"):
        return router.handle(IncomingMessage(chat_id="42", text=text, username=username,
                                             chat_type=chat_type, message_id=7))
    return _send
