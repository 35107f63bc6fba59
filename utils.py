import html
import logging
from datetime import datetime
from typing import List

import pytz

from config import CONFIG

logger = logging.getLogger("RekapanBot")


def log_event(event: str, **kwargs) -> None:
    """Structured log line: {"event": ..., **context}"""
    logger.info({"event": event, **kwargs})


def get_local_time() -> datetime:
    """Get current time in the configured regional timezone"""
    return datetime.now(pytz.timezone(CONFIG["TIMEZONE"]))


def format_timestamp(moment: datetime = None) -> str:
    moment = moment or get_local_time()
    return f"{moment.strftime('%d/%m/%Y %H.%M.%S')} {CONFIG['TIMEZONE_LABEL']}"


def escape(value) -> str:
    """Escape a value for Telegram HTML parse mode"""
    return html.escape(str(value), quote=False)


def split_message(text: str, max_length: int = None) -> List[str]:
    """Split text into chunks under max_length, breaking on line boundaries where possible."""
    max_length = max_length or CONFIG["MAX_MESSAGE_LENGTH"]
    if len(text) <= max_length:
        return [text]
    chunks = []
    chunk = ""
    for line in text.split("\n"):
        while len(line) + 1 > max_length:
            if chunk:
                chunks.append(chunk)
                chunk = ""
            chunks.append(line[:max_length])
            line = line[max_length:]
        if len(chunk) + len(line) + 1 > max_length:
            chunks.append(chunk)
            chunk = ""
        chunk += line + "\n"
    if chunk.strip():
        chunks.append(chunk)
    return chunks
