"""
Trip-start one-time codes.

A ride's OTP is issued once when the ride is created and never changes.
The parent reads it out to the driver at pickup; the driver submits it to
start the trip.  Comparison is an exact string match: no stripping, no
integer coercion, so ``"0042"`` and ``"42"`` are different codes.
"""

from __future__ import annotations

import hmac
import secrets

from .errors import ValidationError

MIN_OTP_LENGTH = 4
MAX_OTP_LENGTH = 6


def generate_otp(length: int = 4) -> str:
    """Return a uniformly random numeric string of *length* digits."""
    if not MIN_OTP_LENGTH <= length <= MAX_OTP_LENGTH:
        raise ValueError(
            f"OTP length must be between {MIN_OTP_LENGTH} and {MAX_OTP_LENGTH}"
        )
    return f"{secrets.randbelow(10 ** length):0{length}d}"


def validate_otp_format(candidate: str) -> None:
    """Reject anything that could never be an OTP before comparing."""
    if not isinstance(candidate, str) or not candidate.isdigit() or not candidate.isascii():
        raise ValidationError("OTP must contain digits only", field="otp")
    if not MIN_OTP_LENGTH <= len(candidate) <= MAX_OTP_LENGTH:
        raise ValidationError(
            f"OTP must be {MIN_OTP_LENGTH}-{MAX_OTP_LENGTH} digits long",
            field="otp",
        )


def verify_otp(candidate: str, actual: str) -> bool:
    return hmac.compare_digest(candidate.encode(), actual.encode())
