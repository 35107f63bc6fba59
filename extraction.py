"""
Free-text activation parsing.

Operators paste activation reports in several shapes: raw dumps from the
provisioning portal (BGES / WMS orders), Telkomsel work orders, or a plain
``LABEL : value`` block. The text is classified into a dialect first, then
every field is extracted with that dialect's ordered list of strategies.
The first strategy that yields a non-empty value wins.
"""
import logging
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

from config import DIALECT_KEYWORDS, FIELD_PATTERNS, ONT_BRAND_PREFIXES
from errors import MissingRequiredFields
from models import ActivationRecord, ParsedDraft, UserRecord

logger = logging.getLogger(__name__)

# (raw text, trimmed non-empty lines, fields extracted so far) -> value
Rule = Callable[[str, List[str], Dict[str, str]], Optional[str]]
RuleSet = Dict[str, List[Rule]]

REQUIRED_FIELDS = {"sn_ont": "SN ONT", "nik_ont": "NIK ONT"}


class Dialect(Enum):
    BGES = "BGES"
    WMS = "WMS"
    TSEL = "TSEL"
    GENERIC = "GENERIC"


def classify(upper_text: str) -> Dialect:
    """Pick the dialect whose keywords appear first in priority order."""
    for tag, keywords in DIALECT_KEYWORDS:
        if any(keyword in upper_text for keyword in keywords):
            return Dialect(tag)
    return Dialect.GENERIC


def split_lines(text: str) -> List[str]:
    return [line.strip() for line in text.splitlines() if line.strip()]


# --- Strategies ---
def labeled(label: str) -> Rule:
    """Value after the first colon on the first line starting with 'LABEL :'"""
    prefix = f"{label.upper()} :"

    def rule(text: str, lines: List[str], found: Dict[str, str]) -> Optional[str]:
        for line in lines:
            if line.upper().startswith(prefix):
                return line.split(":", 1)[1].strip()
        return None

    return rule


def pattern(key: str, last: bool = False, prefix: str = "") -> Rule:
    """Capture group 1 of a FIELD_PATTERNS regex; last=True takes the final occurrence"""
    regex = FIELD_PATTERNS[key]

    def rule(text: str, lines: List[str], found: Dict[str, str]) -> Optional[str]:
        if last:
            matches = list(regex.finditer(text))
            match = matches[-1] if matches else None
        else:
            match = regex.search(text)
        if match and match.group(1) and match.group(1).strip():
            return prefix + match.group(1).strip()
        return None

    return rule


def copy_of(field: str) -> Rule:
    def rule(text: str, lines: List[str], found: Dict[str, str]) -> Optional[str]:
        return found.get(field) or None

    return rule


def constant(value: str) -> Rule:
    def rule(text: str, lines: List[str], found: Dict[str, str]) -> Optional[str]:
        return value

    return rule


SN_ONT_RULES = [pattern("sn_ont")] + [pattern(f"sn_{brand.lower()}") for brand in ONT_BRAND_PREFIXES]

DEVICE_RULES: RuleSet = {
    "sn_ont": SN_ONT_RULES,
    "nik_ont": [pattern("nik_ont")],
    "stb_id": [pattern("stb_id")],
    "nik_stb": [pattern("nik_stb")],
}


def portal_rules(owner: str) -> RuleSet:
    """Rules for portal dumps, where order rows repeat and the last one is current."""
    return {
        "ao": [pattern("ao_portal", last=True, prefix="SC"), labeled("AO")],
        "workorder": [copy_of("ao"), labeled("WORKORDER")],
        "service_no": [pattern("service_no_bare", last=True), labeled("SERVICE NO")],
        "customer_name": [pattern("customer_portal"), labeled("CUSTOMER NAME")],
        "owner": [constant(owner)],
        "workzone": [pattern("workzone_portal", last=True), labeled("WORKZONE")],
        **DEVICE_RULES,
    }


DIALECT_RULES: Dict[Dialect, RuleSet] = {
    Dialect.BGES: portal_rules("BGES"),
    Dialect.WMS: portal_rules("WMS"),
    Dialect.TSEL: {
        "ao": [pattern("ao"), pattern("sc_number")],
        "workorder": [pattern("workorder"), copy_of("ao")],
        "service_no": [pattern("service_no")],
        "customer_name": [pattern("customer_name")],
        "owner": [constant("TSEL")],
        "workzone": [pattern("workzone")],
        **DEVICE_RULES,
    },
    Dialect.GENERIC: {
        "ao": [labeled("AO"), pattern("ao")],
        "workorder": [labeled("WORKORDER"), pattern("workorder")],
        "service_no": [labeled("SERVICE NO"), pattern("service_no")],
        "customer_name": [labeled("CUSTOMER NAME"), pattern("customer_name")],
        "owner": [labeled("OWNER"), pattern("owner")],
        "workzone": [labeled("WORKZONE"), pattern("workzone")],
        "sn_ont": [labeled("SN ONT")] + SN_ONT_RULES,
        "nik_ont": [labeled("NIK ONT"), pattern("nik_ont")],
        "stb_id": [labeled("STB ID"), pattern("stb_id")],
        "nik_stb": [labeled("NIK STB"), pattern("nik_stb")],
    },
}


def extract_fields(text: str, rules: RuleSet) -> Dict[str, str]:
    """Run each field's strategies in order; missing fields become empty strings."""
    lines = split_lines(text)
    found: Dict[str, str] = {}
    for field, strategies in rules.items():
        found[field] = ""
        for strategy in strategies:
            value = strategy(text, lines, found)
            if value:
                found[field] = value
                break
    return found


def parse_with_dialect(raw_text: str, submitter: UserRecord) -> Tuple[Dialect, ParsedDraft]:
    dialect = classify(raw_text.upper())
    values = extract_fields(raw_text, DIALECT_RULES[dialect])
    draft = ParsedDraft(technician=submitter.technician_label, **values)
    logger.info({"event": "activation_parsed", "dialect": dialect.value, "sn_ont": draft.sn_ont, "nik_ont": draft.nik_ont})
    return dialect, draft


def parse(raw_text: str, submitter: UserRecord) -> ParsedDraft:
    """Parse activation text into a draft. Pure: no store access, no validation."""
    return parse_with_dialect(raw_text, submitter)[1]


def missing_required_fields(draft: ParsedDraft) -> List[str]:
    return [label for field, label in REQUIRED_FIELDS.items() if not getattr(draft, field).strip()]


def validate_draft(draft: ParsedDraft) -> ParsedDraft:
    missing = missing_required_fields(draft)
    if missing:
        raise MissingRequiredFields(missing)
    return draft


def parse_activation(text: str, submitter: UserRecord, date_label: str) -> ActivationRecord:
    """Parse and validate, stamping the record with its date label."""
    draft = validate_draft(parse(text, submitter))
    return ActivationRecord.from_draft(draft, date_label)
