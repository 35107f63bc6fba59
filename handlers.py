import re
import threading
import traceback
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from config import COMMAND_PATTERN, get_error_message
from duplicates import dedupe_rows, is_duplicate
from errors import (BotError, DuplicateRecord, EmptyActivation, UnauthorizedAccess,
                    UnrecognizedCommand, UsageError)
from extraction import missing_required_fields, parse_activation, parse_with_dialect
from models import UserRecord
from periods import filter_by_period, parse_period_args, today_label
from reports import (count_with_nik, format_nik_count, format_parse_preview, format_period_report,
                     format_saved_confirmation, format_sn_search, format_summary_report,
                     format_technician_report, records_for_technician, records_matching_technician,
                     records_with_sn, to_csv)
from services import RecordStore, UserDirectory
from utils import escape, get_local_time, log_event


PUBLIC = "public"
USER = "user"
ADMIN = "admin"

GROUP_CHAT_TYPES = {"group", "supergroup"}
USERNAME_COMMAND = re.compile(r'^[A-Za-z0-9_]+$')

SAMPLE_ACTIVATION = (
    "OWNER : BGES\n"
    "AO : SC123456\n"
    "SERVICE NO : 9876543210\n"
    "CUSTOMER NAME : PT TEST\n"
    "WORKZONE : ZONE1\n"
    "SN ONT : ZTEGDA140D99\n"
    "NIK ONT : 12345678"
)


@dataclass
class IncomingMessage:
    chat_id: str
    text: str
    username: str = ""
    chat_type: str = "private"
    message_id: Optional[int] = None

    @property
    def is_group(self) -> bool:
        return self.chat_type in GROUP_CHAT_TYPES


@dataclass
class CommandRequest:
    message: IncomingMessage
    command: str
    args: str = ""
    user: Optional[UserRecord] = None


@dataclass
class CommandSpec:
    func: Callable[["CommandRouter", CommandRequest], None]
    access: str = PUBLIC
    description: str = ""


# --- Command Handlers ---
COMMAND_HANDLERS: Dict[str, CommandSpec] = {}


def command(*names: str, access: str = PUBLIC, description: str = "") -> Callable:
    """Decorator for registering command handlers"""
    def decorator(func: Callable) -> Callable:
        spec = CommandSpec(func, access, description)
        for name in names:
            COMMAND_HANDLERS[name] = spec
        return func
    return decorator


class CommandRouter:
    """
    Maps chat commands to handlers with their stores and reply channel.

    Duplicate check + append, and the /clean rewrite, run under one lock so
    concurrent submissions handled by this process cannot interleave between
    the read and the write. Other processes writing the same sheet are not
    covered.
    """

    def __init__(self, records: RecordStore, users: UserDirectory, messenger):
        self.records = records
        self.users = users
        self.messenger = messenger
        self.write_lock = threading.Lock()

    def reply(self, message: IncomingMessage, text: str) -> None:
        self.messenger.send_message(message.chat_id, text, reply_to=message.message_id)

    def _safe_reply(self, message: IncomingMessage, text: str) -> None:
        try:
            self.reply(message, text)
        except Exception as e:
            log_event("reply_failed", chat_id=message.chat_id, error=str(e))

    def _authorize(self, spec: CommandSpec, name: str, message: IncomingMessage) -> Optional[UserRecord]:
        if spec.access == PUBLIC:
            return None
        user = self.users.find_active(message.username)
        if spec.access == ADMIN and not (user and user.is_admin):
            raise UnauthorizedAccess(name)
        if user is None:
            raise UnauthorizedAccess(name, admin_required=False)
        return user

    def _resolve(self, name: str, args: str, message: IncomingMessage) -> CommandSpec:
        spec = COMMAND_HANDLERS.get(name)
        if spec is not None:
            return spec
        # Bare /<username> is an admin lookup; for everyone else it is just unknown
        if not args and USERNAME_COMMAND.match(name) and self.users.is_admin(message.username):
            return CommandSpec(handle_username_stats, ADMIN)
        raise UnrecognizedCommand(name)

    def handle(self, message: IncomingMessage) -> Optional[str]:
        """Process one chat message. Returns the command name, or None if ignored."""
        match = COMMAND_PATTERN.match((message.text or "").strip())
        if not match:
            return None
        name = match.group(1).lower()
        args = (match.group(2) or "").strip()

        # Only /aktivasi is processed in group chats
        if message.is_group and name != "aktivasi":
            return None

        log_event("command_received", command=name, chat_id=message.chat_id, username=message.username)
        try:
            spec = self._resolve(name, args, message)
            user = self._authorize(spec, name, message)
            spec.func(self, CommandRequest(message, name, args, user))
        except BotError as e:
            log_event("command_rejected", command=name, error_type=type(e).__name__, error=str(e))
            self._safe_reply(message, e.user_message())
        except Exception as e:
            log_event("command_failed", command=name, error=str(e), trace=traceback.format_exc())
            self._safe_reply(message, get_error_message("system_error"))
        return name


@command("aktivasi", access=USER, description="Input data aktivasi")
def handle_activation(router: CommandRouter, request: CommandRequest) -> None:
    """Parse, validate, reject duplicates, then append the activation row"""
    if not request.args:
        raise EmptyActivation()
    record = parse_activation(request.args, request.user, today_label())
    with router.write_lock:
        existing = router.records.read_records()
        if is_duplicate(existing, record):
            raise DuplicateRecord(record.sn_ont, record.nik_ont)
        router.records.append_record(record)
    log_event("activation_saved", sn_ont=record.sn_ont, nik_ont=record.nik_ont, technician=record.technician)
    router.reply(request.message, format_saved_confirmation(record))


@command("testparsing", access=USER, description="Coba parsing tanpa menyimpan")
def handle_test_parsing(router: CommandRouter, request: CommandRequest) -> None:
    dialect, draft = parse_with_dialect(request.args or SAMPLE_ACTIVATION, request.user)
    router.reply(request.message, format_parse_preview(dialect.value, draft, missing_required_fields(draft)))


@command("cari", access=USER, description="Lihat total aktivasi Anda (/cari <SN> untuk cari SN ONT)")
def handle_search(router: CommandRouter, request: CommandRequest) -> None:
    records = router.records.read_records()
    if request.args:
        sn_ont = request.args.split()[0]
        router.reply(request.message, format_sn_search(records_with_sn(records, sn_ont), sn_ont))
        return
    label = request.user.technician_label
    own = records_for_technician(records, label)
    router.reply(request.message, format_technician_report(own, "STATISTIK ANDA", label))


@command("nik", access=USER, description="Jumlah data untuk NIK ONT tertentu")
def handle_nik(router: CommandRouter, request: CommandRequest) -> None:
    if not request.args:
        raise UsageError("/nik <NIK>")
    nik_ont = request.args.split()[0]
    count = count_with_nik(router.records.read_records(), nik_ont)
    router.reply(request.message, format_nik_count(nik_ont, count))


@command("export", access=USER, description="Unduh CSV data Anda (/export [harian|mingguan|bulanan] [dd/mm/yyyy])")
def handle_export(router: CommandRouter, request: CommandRequest) -> None:
    label = request.user.technician_label
    own = records_for_technician(router.records.read_records(), label)
    suffix = "semua"
    if request.args:
        period, anchor = parse_period_args(request.args)
        own = filter_by_period(own, period, anchor)
        suffix = period.value
    if not own:
        router.reply(request.message, "⚠️ Tidak ada data aktivasi untuk diekspor.")
        return
    stamp = get_local_time().strftime("%Y%m%d")
    filename = f"aktivasi_{label.replace('@', '')}_{suffix}_{stamp}.csv"
    router.messenger.send_document(
        request.message.chat_id, filename, to_csv(own).encode("utf-8"),
        caption=f"{len(own)} data aktivasi", reply_to=request.message.message_id,
    )


@command("ps", access=ADMIN, description="Laporan aktivasi (/ps [harian|mingguan|bulanan] [dd/mm/yyyy])")
def handle_period_report(router: CommandRouter, request: CommandRequest) -> None:
    period, anchor = parse_period_args(request.args)
    records = filter_by_period(router.records.read_records(), period, anchor)
    router.reply(request.message, format_period_report(records, period, anchor))


@command("allps", access=ADMIN, description="Ringkasan total keseluruhan")
def handle_summary(router: CommandRouter, request: CommandRequest) -> None:
    router.reply(request.message, format_summary_report(router.records.read_records()))


@command("stat", access=ADMIN, description="Statistik teknisi berdasarkan nama (/stat <nama>)")
def handle_stat(router: CommandRouter, request: CommandRequest) -> None:
    if not request.args:
        raise UsageError("/stat <nama_teknisi>")
    matched = records_matching_technician(router.records.read_records(), request.args)
    router.reply(request.message, format_technician_report(matched, "STATISTIK TEKNISI", request.args))


@command("clean", access=ADMIN, description="Hapus data duplikat")
def handle_clean(router: CommandRouter, request: CommandRequest) -> None:
    with router.write_lock:
        rows = router.records.read_rows()
        kept, dropped = dedupe_rows(rows)
        if dropped:
            router.records.rewrite(kept, len(rows))
    if not dropped:
        router.reply(request.message, "✅ Sheet sudah bersih, tidak ada data duplikat.")
        return
    log_event("sheet_cleaned", dropped=dropped, kept=len(kept) - 1)
    router.reply(request.message, f"✅ Berhasil menghapus {dropped} data duplikat. Sheet telah dibersihkan.")


@command("help", "start", description="Tampilkan bantuan ini")
def handle_help(router: CommandRouter, request: CommandRequest) -> None:
    sections = {USER: [], ADMIN: []}
    seen = set()
    for name, spec in COMMAND_HANDLERS.items():
        if id(spec) in seen or spec.access == PUBLIC:
            continue
        seen.add(id(spec))
        sections[spec.access].append(f"/{name} - {escape(spec.description)}")

    lines = ["🤖 <b>Bot Rekapan Quality</b>", "", "<b>Commands User:</b>", *sections[USER], "/help - Tampilkan bantuan ini"]
    if router.users.is_admin(request.message.username):
        lines += ["", "<b>Admin Commands:</b>", *sections[ADMIN],
                  "/username - Statistik berdasarkan username (contoh: /HKS_HENDRA_16951456)"]
    router.reply(request.message, "\n".join(lines))


def handle_username_stats(router: CommandRouter, request: CommandRequest) -> None:
    records = records_for_technician(router.records.read_records(), request.command)
    router.reply(request.message, format_technician_report(records, "STATISTIK TEKNISI", f"@{request.command}"))
