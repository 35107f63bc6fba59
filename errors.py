from typing import List

from config import get_error_message
from utils import escape


class BotError(Exception):
    """Base exception for bot-related errors"""
    error_type = "system_error"

    def __init__(self, message: str = "", **details):
        self.details = details
        super().__init__(message or self.error_type)

    def user_message(self) -> str:
        """Reply shown to the chat user"""
        return get_error_message(self.error_type, **self.details)


class MissingRequiredFields(BotError):
    """Raised when SN ONT and/or NIK ONT could not be extracted"""
    error_type = "missing_fields"

    def __init__(self, missing: List[str]):
        self.missing = list(missing)
        super().__init__(f"missing required fields: {', '.join(self.missing)}", fields=", ".join(self.missing))


class DuplicateRecord(BotError):
    """Raised when the natural key is already in the record sheet"""
    error_type = "duplicate"

    def __init__(self, sn_ont: str, nik_ont: str):
        self.sn_ont = sn_ont
        self.nik_ont = nik_ont
        super().__init__(f"duplicate activation {sn_ont}/{nik_ont}")


class UnrecognizedCommand(BotError):
    error_type = "unknown_command"

    def __init__(self, command: str):
        self.command = command
        super().__init__(f"unrecognized command: {command}")


class UnauthorizedAccess(BotError):
    """Raised when the caller lacks the role a command requires"""

    def __init__(self, command: str, admin_required: bool = True):
        self.command = command
        self.error_type = "admin_only" if admin_required else "not_registered"
        super().__init__(f"access denied for /{command}", command=command)


class UsageError(BotError):
    error_type = "usage"

    def __init__(self, usage: str):
        super().__init__(f"bad usage, expected {usage}", usage=escape(usage))


class EmptyActivation(BotError):
    error_type = "empty_activation"


class InvalidDateArgument(BotError):
    error_type = "invalid_date"

    def __init__(self, value: str):
        super().__init__(f"invalid date argument: {value}", value=escape(value))


class InvalidPeriodArgument(BotError):
    error_type = "invalid_period"

    def __init__(self, value: str):
        super().__init__(f"invalid period argument: {value}", value=escape(value))


class StoreUnavailable(BotError):
    """Raised when the sheet service cannot be reached or rejects a call"""
    error_type = "system_error"
