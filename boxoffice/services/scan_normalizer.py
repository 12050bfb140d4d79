"""Extract a credential id from whatever the scanner (or a human) produced.

Sources seen at the door: bare UUIDs typed by hand, QR codes holding only
the id, QR codes holding our JSON payload, URL-encoded copies of either,
and older ``ticket_id=...`` strings.  Each format is one small strategy;
they are tried in order and the first non-empty answer wins.  Only the
final token must be non-empty.
"""

from __future__ import annotations

import json
import re
from collections.abc import Callable
from urllib.parse import parse_qs, unquote

EMPTY_INPUT_MESSAGE = "Please enter a ticket ID"
NO_ID_MESSAGE = "Unable to extract ticket ID from QR data"

_ID_KEYS = ("ticket_id", "card_id", "id")
_LABELLED_RE = re.compile(
    r"""["']?(?:ticket|card)[_-]?id["'\s:=]+([0-9a-fA-F-]{8,})""",
    re.IGNORECASE,
)
_QUOTES = "\"'"

Strategy = Callable[[str], "str | None"]


class ScanNormalizationError(ValueError):
    pass


def _mentions_id_label(text: str) -> bool:
    lowered = text.lower()
    return "ticket_id" in lowered or "card_id" in lowered


def from_json(text: str) -> str | None:
    if not (text.startswith("{") and text.endswith("}")):
        return None
    try:
        data = json.loads(text)
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None
    for key in _ID_KEYS:
        value = data.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def from_labelled_token(text: str) -> str | None:
    if not _mentions_id_label(text):
        return None
    match = _LABELLED_RE.search(text)
    return match.group(1) if match else None


def from_query_string(text: str) -> str | None:
    if not _mentions_id_label(text):
        return None
    query = text.split("?", 1)[1] if "?" in text else text
    params = parse_qs(query)
    for key in ("ticket_id", "card_id"):
        for value in params.get(key, []):
            if value.strip():
                return value.strip()
    return None


def from_bare_text(text: str) -> str | None:
    return text.strip().strip(_QUOTES).strip() or None


STRATEGIES: tuple[Strategy, ...] = (
    from_json,
    from_labelled_token,
    from_query_string,
    from_bare_text,
)


def _url_decode(raw: str) -> str:
    try:
        return unquote(raw, errors="strict")
    except UnicodeDecodeError:
        return raw


def normalize(raw: str | None) -> str:
    """Return the credential id in ``raw`` or raise ScanNormalizationError."""
    if raw is None or not raw.strip():
        raise ScanNormalizationError(EMPTY_INPUT_MESSAGE)

    text = _url_decode(raw.strip()).strip()

    # Labelled-but-unparseable text ("ticket_id: ???") still falls
    # through to the bare-text strategy rather than failing.
    for strategy in STRATEGIES:
        found = strategy(text)
        if found:
            return found

    raise ScanNormalizationError(NO_ID_MESSAGE)
