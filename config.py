import re
from decouple import config

# Environment variables
ENV_VARS = {
    "required": ["TELEGRAM_BOT_TOKEN", "SHEET_ID", "GOOGLE_SERVICE_ACCOUNT_KEY"],
    "optional": ["RECORD_SHEET", "USER_SHEET", "TIMEZONE", "TIMEZONE_LABEL", "MAX_MESSAGE_LENGTH",
                 "SHEETS_TIMEOUT", "TELEGRAM_TIMEOUT", "PORT"]
}

CONFIG = {
    "RECORD_SHEET": config("RECORD_SHEET", default="REKAPAN QUALITY"),
    "USER_SHEET": config("USER_SHEET", default="USER"),
    "TIMEZONE": config("TIMEZONE", default="Asia/Jakarta"),
    "TIMEZONE_LABEL": config("TIMEZONE_LABEL", default="WIB"),
    "MAX_MESSAGE_LENGTH": config("MAX_MESSAGE_LENGTH", default=4000, cast=int),
    "SHEETS_TIMEOUT": config("SHEETS_TIMEOUT", default=30, cast=int),
    "TELEGRAM_TIMEOUT": config("TELEGRAM_TIMEOUT", default=30, cast=int),
    "PORT": config("PORT", default=10000, cast=int),
}

# Activation sheet schema, in persisted column order
RECORD_COLUMNS = [
    "TANGGAL", "AO", "WORKORDER", "SERVICE NO", "CUSTOMER NAME", "OWNER",
    "WORKZONE", "SN ONT", "NIK ONT", "STB ID", "NIK STB", "TEKNISI"
]
RECORD_RANGE_LAST_COLUMN = "L"

# User sheet positions
USER_COLUMNS = {"name": 0, "handle": 1, "role": 2, "status": 3}
ROLE_ADMIN = "ADMIN"
STATUS_ACTIVE = "AKTIF"

# Placeholder for blank values in reports and rankings
MISSING_VALUE = "-"

# Dialect keywords, checked in this order; first hit wins
DIALECT_KEYWORDS = [
    ("BGES", ["INDIBIZ", "HSI"]),
    ("WMS", ["WMS", "MWS"]),
    ("TSEL", ["TSEL"]),
]

# Brand prefixes seen on ONT serial numbers
ONT_BRAND_PREFIXES = ["ZTEG", "HWTC", "HUAW", "FHTT", "FIBR"]

# Regex patterns for field extraction
FIELD_PATTERNS = {
    "ao_portal": re.compile(r'AO\|.*?SC(\d{6,})'),
    "service_no_bare": re.compile(r'\b(\d{11,12})\b'),
    "customer_portal": re.compile(r'\d{2}/\d{2}/\d{4}\s+\d{2}:\d{2}\s+\d+\s+([A-Z0-9\s]+?)\s{2,}'),
    "workzone_portal": re.compile(r'AO\|\s+([A-Z]{2,})'),
    "ao": re.compile(r'AO[:\s]+([A-Z0-9]+)', re.IGNORECASE),
    "sc_number": re.compile(r'SC(\d+)', re.IGNORECASE),
    "workorder": re.compile(r'WORKORDER[:\s]+([A-Z0-9-]+)', re.IGNORECASE),
    "service_no": re.compile(r'SERVICE\s*NO[:\s]+(\d+)', re.IGNORECASE),
    "customer_name": re.compile(r'CUSTOMER\s*NAME[:\s]+(.+)', re.IGNORECASE),
    "owner": re.compile(r'OWNER[:\s]+([A-Z0-9]+)', re.IGNORECASE),
    "workzone": re.compile(r'WORKZONE[:\s]+([A-Z0-9]+)', re.IGNORECASE),
    "sn_ont": re.compile(r'SN\s*ONT[:\s]+([A-Z0-9]+)', re.IGNORECASE),
    "nik_ont": re.compile(r'NIK\s*ONT[:\s]+(\d+)', re.IGNORECASE),
    "stb_id": re.compile(r'STB\s*ID[:\s]+([A-Z0-9]+)', re.IGNORECASE),
    "nik_stb": re.compile(r'NIK\s*STB[:\s]+(\d+)', re.IGNORECASE),
}
for _prefix in ONT_BRAND_PREFIXES:
    FIELD_PATTERNS[f"sn_{_prefix.lower()}"] = re.compile(rf'({_prefix}[A-Z0-9]+)', re.IGNORECASE)

# Command patterns
COMMAND_PATTERN = re.compile(r'^/([A-Za-z0-9_]+)(?:@\w+)?(?:\s+(.*))?$', re.DOTALL)

# Report sizes
REPORT_TOP_N = {
    "daily": 10,
    "weekly": 15,
    "monthly": 20,
    "summary": 5,
}

# Reply templates
ERROR_MESSAGES = {
    "missing_fields": "❌ Data tidak lengkap. Field berikut wajib diisi: {fields}",
    "duplicate": "❌ Data duplikat. SN ONT dan NIK ONT sudah pernah diinput.",
    "unknown_command": "❓ Command tidak dikenali. Ketik /help untuk melihat daftar command.",
    "admin_only": "❌ Akses ditolak. Command /{command} hanya untuk admin.",
    "not_registered": "❌ Anda tidak terdaftar sebagai user aktif.",
    "empty_activation": "Silakan kirim data aktivasi setelah /aktivasi.",
    "usage": "Format: {usage}",
    "invalid_date": "❌ Tanggal tidak dikenali: {value}. Gunakan format dd/mm/yyyy.",
    "invalid_period": "❌ Periode tidak dikenali: {value}. Pilih harian, mingguan, atau bulanan.",
    "system_error": "❌ Terjadi kesalahan sistem. Silakan coba lagi nanti.",
}


def get_error_message(error_type: str, **kwargs) -> str:
    """Get formatted error message"""
    template = ERROR_MESSAGES.get(error_type, ERROR_MESSAGES["system_error"])
    return template.format(**kwargs)
