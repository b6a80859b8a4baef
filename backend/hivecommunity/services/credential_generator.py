"""
Credential Generator - login identifiers and secrets for approved hives/members

Identifier format:
    <owner[:10]>.<group[:8]>.<last 4 digits of epoch ms>@<domain>

The four-digit suffix is derived from the clock, so two approvals in the same
window for similarly named owners of the same group produce the same
identifier. The generator stays pure; callers that persist credentials check
for collisions and ask for a fresh random suffix (see
``ApplicationLifecycle._issue_credential``).
"""

import re
import secrets
import time
from dataclasses import dataclass
from typing import Optional

from hivecommunity.services.document_store import utc_timestamp

UPPERCASE = "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
LOWERCASE = "abcdefghijklmnopqrstuvwxyz"
DIGITS = "0123456789"
SYMBOLS = "!@#$%&*"
ALPHABET = UPPERCASE + LOWERCASE + DIGITS + SYMBOLS

SECRET_LENGTH = 10
OWNER_PREFIX_LENGTH = 10
GROUP_PREFIX_LENGTH = 8

_NON_ALNUM = re.compile(r"[^a-z0-9]")
_random = secrets.SystemRandom()


@dataclass(frozen=True)
class GeneratedCredential:
    identifier: str
    secret: str
    generated_at: str


def clean_name(value: Optional[str], max_length: int, fallback: str) -> str:
    """Lowercase alphanumeric prefix of ``value``"""
    cleaned = _NON_ALNUM.sub("", (value or "").lower())[:max_length]
    return cleaned or fallback


def timestamp_suffix(now_ms: Optional[int] = None) -> str:
    """Last four digits of the epoch-millisecond clock"""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return str(now_ms)[-4:]


def random_suffix() -> str:
    return f"{secrets.randbelow(10000):04d}"


def build_identifier(owner_name: Optional[str], group_name: Optional[str], domain: str,
                     suffix: Optional[str] = None) -> str:
    owner = clean_name(owner_name, OWNER_PREFIX_LENGTH, "member")
    group = clean_name(group_name, GROUP_PREFIX_LENGTH, "community")
    return f"{owner}.{group}.{suffix or timestamp_suffix()}@{domain}"


def generate_secret(length: int = SECRET_LENGTH) -> str:
    """Random secret with at least one upper, lower, digit and symbol, shuffled"""
    chars = [
        _random.choice(UPPERCASE),
        _random.choice(LOWERCASE),
        _random.choice(DIGITS),
        _random.choice(SYMBOLS),
    ]
    chars.extend(_random.choice(ALPHABET) for _ in range(length - len(chars)))
    _random.shuffle(chars)
    return "".join(chars)


def generate(owner_name: Optional[str], group_name: Optional[str], domain: str,
             suffix: Optional[str] = None) -> GeneratedCredential:
    """Produce a login identifier and secret; no side effects"""
    return GeneratedCredential(
        identifier=build_identifier(owner_name, group_name, domain, suffix),
        secret=generate_secret(),
        generated_at=utc_timestamp(),
    )
