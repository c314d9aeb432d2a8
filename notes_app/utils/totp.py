# notes_app/utils/totp.py
"""
Time-based one-time passwords on top of pyotp.

A ``TOTPConfig`` is what gets stored per verification row; codes are always
numeric.
"""

import hashlib
from dataclasses import dataclass
from typing import Optional

import pyotp

DIGITS = "0123456789"
DEFAULT_PERIOD = 30
DEFAULT_DIGITS = 6
DEFAULT_ALGORITHM = "SHA1"
SUPPORTED_ALGORITHMS = {"SHA1": hashlib.sha1, "SHA256": hashlib.sha256, "SHA512": hashlib.sha512}


@dataclass(frozen=True)
class TOTPConfig:
    secret: str
    period: int = DEFAULT_PERIOD
    digits: int = DEFAULT_DIGITS
    algorithm: str = DEFAULT_ALGORITHM
    char_set: str = DIGITS

    def to_pyotp(self) -> pyotp.TOTP:
        digest = SUPPORTED_ALGORITHMS.get(self.algorithm.upper())
        if digest is None:
            raise ValueError(f"unsupported algorithm {self.algorithm!r}")
        return pyotp.TOTP(self.secret, digits=self.digits, digest=digest, interval=self.period)


def generate_totp(
    *,
    period: int = DEFAULT_PERIOD,
    digits: int = DEFAULT_DIGITS,
    algorithm: str = DEFAULT_ALGORITHM,
    secret: Optional[str] = None,
    now: Optional[float] = None,
):
    """Return ``(otp, config)`` for a fresh (or the given) secret."""
    config = TOTPConfig(
        secret=secret or pyotp.random_base32(),
        period=period,
        digits=digits,
        algorithm=algorithm.upper(),
    )
    otp = config.to_pyotp()
    return (otp.now() if now is None else otp.at(int(now))), config


def verify_totp(otp: str, config: TOTPConfig, *, window: int = 1, now: Optional[float] = None) -> bool:
    """Check ``otp`` against the current time step and ``window`` steps on each side."""
    if not otp or len(otp) != config.digits:
        return False
    for_time = None if now is None else int(now)
    return config.to_pyotp().verify(otp, for_time=for_time, valid_window=window)


def get_totp_auth_uri(config: TOTPConfig, *, account_name: str, issuer: str) -> str:
    """otpauth:// URI understood by authenticator apps."""
    return config.to_pyotp().provisioning_uri(name=account_name, issuer_name=issuer)
