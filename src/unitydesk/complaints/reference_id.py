"""Citizen-facing tracking codes such as ``PW7K2M9X`` (displayed ``PW-7K2M9X``)."""

from __future__ import annotations

import random
import re
from typing import Iterable, Optional

from unitydesk.utils.logging import get_logger
from unitydesk.utils.time import epoch_ms


logger = get_logger(__name__)

DEPARTMENT_CODES: dict[str, str] = {
    "Municipal Corporation": "MC",
    "Public Works Department": "PW",
    "Water Resources": "WR",
    "Electricity Department": "ED",
    "Police Department": "PD",
    "Health Department": "HD",
    "Transport Department": "TD",
    "Urban Development": "UD",
    "Forest Department": "FD",
    "District Administration": "DA",
}
DEFAULT_DEPARTMENT_CODE = "GC"

# No 0/O or 1/I/L.
SAFE_ALPHABET = "23456789ABCDEFGHJKLMNPQRSTUVWXYZ"
SUFFIX_LENGTH = 6
MAX_ATTEMPTS = 100

REFERENCE_ID_RE = re.compile(r"^[A-Z]{2}[2-9A-HJ-NP-Z]{6}$")


def department_code(department: str) -> str:
    return DEPARTMENT_CODES.get(department, DEFAULT_DEPARTMENT_CODE)


def _encode(value: int, alphabet: str, length: int) -> str:
    base = len(alphabet)
    chars = []
    for _ in range(length):
        value, index = divmod(value, base)
        chars.append(alphabet[index])
    return "".join(reversed(chars))


def _timestamp_suffix(code: str, excluded: set[str], now_ms: int) -> str:
    """Deterministic suffix from the clock, bumped past anything excluded."""
    value = now_ms
    while True:
        candidate = code + _encode(value, SAFE_ALPHABET, SUFFIX_LENGTH)
        if candidate not in excluded:
            return candidate
        value += 1


def generate_reference_id(
    department: str,
    existing_ids: Iterable[str] = (),
    *,
    alphabet: str = SAFE_ALPHABET,
    max_attempts: int = MAX_ATTEMPTS,
    rng: Optional[random.Random] = None,
    now_ms: Optional[int] = None,
) -> str:
    """Return a code for ``department`` that is not in ``existing_ids``.

    Random draws are tried ``max_attempts`` times. After that the suffix is
    derived from the millisecond clock, written in the safe alphabet, so the
    function always terminates and always returns a well-formed code.
    """
    code = department_code(department)
    excluded = {item.upper() for item in existing_ids}
    chooser = rng or random.SystemRandom()

    for _ in range(max_attempts):
        candidate = code + "".join(chooser.choice(alphabet) for _ in range(SUFFIX_LENGTH))
        if candidate not in excluded:
            return candidate

    logger.warning("reference_id.fallback department=%s attempts=%s", department, max_attempts)
    if now_ms is None:
        now_ms = epoch_ms()
    return _timestamp_suffix(code, excluded, now_ms)


def is_valid_reference_id(reference_id: str) -> bool:
    return bool(REFERENCE_ID_RE.match(reference_id or ""))


def format_reference_id(reference_id: str) -> str:
    """``PW7K2M9X`` -> ``PW-7K2M9X``; anything not 8 characters is returned as is."""
    if len(reference_id) != 8:
        return reference_id
    return f"{reference_id[:2]}-{reference_id[2:]}"


def normalize_reference_id(value: str) -> str:
    """Undo display formatting: upper-case, no hyphens or spaces."""
    return re.sub(r"[\s-]", "", value or "").upper()
