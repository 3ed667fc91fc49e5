"""Verification code generation."""

import secrets

CODE_LENGTH = 6


def generate_verification_code(length: int = CODE_LENGTH) -> str:
    """Return a uniformly random numeric code of ``length`` digits, zero padded."""

    if length < 1:
        raise ValueError("length must be positive")
    return str(secrets.randbelow(10**length)).zfill(length)
