"""Tenant-configurable password policy and bcrypt hashing."""

import re
from dataclasses import dataclass

import bcrypt

from app.core.exceptions import PolicyError

BCRYPT_ROUNDS = 12
# bcrypt only looks at the first 72 bytes and bcrypt>=5 rejects anything longer
BCRYPT_MAX_BYTES = 72
SPECIAL_CHARACTERS = '!@#$%^&*(),.?":{}|<>'

_UPPERCASE_RE = re.compile(r"[A-Z]")
_DIGIT_RE = re.compile(r"[0-9]")
_SPECIAL_RE = re.compile("[" + re.escape(SPECIAL_CHARACTERS) + "]")


@dataclass(frozen=True)
class PasswordPolicy:
    """
    Password rules of a single tenant.

    Attributes:
        min_length: Minimum number of characters
        require_uppercase: Require at least one A-Z
        require_number: Require at least one 0-9
        require_special: Require at least one character from SPECIAL_CHARACTERS
    """

    min_length: int = 8
    require_uppercase: bool = True
    require_number: bool = True
    require_special: bool = False

    @classmethod
    def for_tenant(cls, tenant) -> "PasswordPolicy":
        return cls(
            min_length=tenant.password_min_length,
            require_uppercase=tenant.password_require_uppercase,
            require_number=tenant.password_require_number,
            require_special=tenant.password_require_special,
        )

    def describe(self) -> str:
        """Human-readable summary of the active thresholds"""
        rules = [f"at least {self.min_length} characters"]
        if self.require_uppercase:
            rules.append("an uppercase letter")
        if self.require_number:
            rules.append("a number")
        if self.require_special:
            rules.append(f"a special character ({SPECIAL_CHARACTERS})")
        return ", ".join(rules)


def validate_password(policy: PasswordPolicy, candidate: str) -> None:
    """
    Check a candidate password against a tenant policy.

    Rules are evaluated in a fixed order (length, byte limit, uppercase,
    number, special) and the first failing rule is reported together with the
    full list of the tenant's active requirements.

    Args:
        policy: Tenant password policy
        candidate: Plain-text password

    Raises:
        PolicyError: If any enabled rule is violated
    """
    if len(candidate) < policy.min_length:
        violated = f"Password must be at least {policy.min_length} characters long"
    elif len(candidate.encode("utf-8")) > BCRYPT_MAX_BYTES:
        violated = f"Password must be at most {BCRYPT_MAX_BYTES} bytes long"
    elif policy.require_uppercase and not _UPPERCASE_RE.search(candidate):
        violated = "Password must contain an uppercase letter"
    elif policy.require_number and not _DIGIT_RE.search(candidate):
        violated = "Password must contain a number"
    elif policy.require_special and not _SPECIAL_RE.search(candidate):
        violated = "Password must contain a special character"
    else:
        return

    raise PolicyError(f"{violated}. Password policy requires {policy.describe()}.")


def hash_password(password: str) -> str:
    """Hash a password with bcrypt (cost factor 12)"""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode(
        "utf-8"
    )


def verify_password(password: str, password_hash: str) -> bool:
    """Constant-time check of a password against a stored bcrypt hash"""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Stored value is not a bcrypt hash
        return False
