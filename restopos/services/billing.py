"""Identifiers derived on write: bill numbers and staff contact handles."""

from __future__ import annotations

import re
import uuid

from restopos.utils.time import epoch_ms

BILL_NUMBER_PREFIX: str = "BILL"
BILL_NUMBER_ATTEMPTS: int = 3
STAFF_EMAIL_DOMAIN: str = "gokul-staff.local"


def generate_bill_number() -> str:
    """Return ``BILL-<epoch ms>-<8 hex chars>``.

    The random suffix keeps numbers distinct when two bills are issued in the
    same millisecond; the unique constraint on ``bills.bill_number`` remains
    the final guard.
    """
    return f"{BILL_NUMBER_PREFIX}-{epoch_ms()}-{uuid.uuid4().hex[:8]}"


def staff_email(name: str) -> str:
    """Return the derived contact handle for a staff member name."""
    local_part: str = re.sub(r"[^a-z0-9\s]", "", name.strip().lower())
    local_part = re.sub(r"\s+", ".", local_part)
    return f"{local_part}@{STAFF_EMAIL_DOMAIN}"
