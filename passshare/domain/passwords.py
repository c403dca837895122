"""Password generation and strength scoring."""
import re
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from passshare.core.random_source import RandomSource
from passshare.errors import InvalidPolicy

UPPERCASE = "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
LOWERCASE = "abcdefghijklmnopqrstuvwxyz"
NUMBERS = "0123456789"
SYMBOLS = "!@#$%^&*()_+-=[]{}|;:,.<>?"

MIN_PASSWORD_LENGTH = 8
MAX_PASSWORD_LENGTH = 128

# Longest plaintext accepted for sharing
MAX_PLAINTEXT_LENGTH = 10000

_REPEATING = re.compile(r"(.)\1{2,}")
_SEQUENTIAL = re.compile(
    r"(abc|bcd|cde|def|efg|fgh|ghi|hij|ijk|jkl|klm|lmn|mno|nop|opq|pqr|qrs|rst|stu|tuv|uvw|vwx|wxy|xyz"
    r"|123|234|345|456|567|678|789)",
    re.IGNORECASE,
)


class PasswordPolicy(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    length: int = Field(16, ge=MIN_PASSWORD_LENGTH, le=MAX_PASSWORD_LENGTH)
    include_uppercase: bool = Field(True, alias="includeUppercase")
    include_lowercase: bool = Field(True, alias="includeLowercase")
    include_numbers: bool = Field(True, alias="includeNumbers")
    include_symbols: bool = Field(True, alias="includeSymbols")

    def enabled_alphabets(self) -> List[str]:
        """Alphabets of the enabled classes, in canonical order."""
        flags = (
            (self.include_uppercase, UPPERCASE),
            (self.include_lowercase, LOWERCASE),
            (self.include_numbers, NUMBERS),
            (self.include_symbols, SYMBOLS),
        )
        return [alphabet for enabled, alphabet in flags if enabled]


DEFAULT_PASSWORD_POLICY = PasswordPolicy()


class PasswordStrength(BaseModel):
    score: int
    label: str
    feedback: List[str]


def synthesize(policy: PasswordPolicy, random: Optional[RandomSource] = None) -> str:
    """Generate a password satisfying ``policy``.

    Draws ``length`` symbols from the combined charset, then overwrites the
    leading positions with one symbol per enabled class so every class is
    represented, and finally shuffles so those positions are not predictable.
    """
    alphabets = policy.enabled_alphabets()
    if not alphabets:
        raise InvalidPolicy()

    random = random or RandomSource()
    charset = "".join(alphabets)

    chars = [random.choice(charset) for _ in range(policy.length)]

    for position, alphabet in enumerate(alphabets):
        chars[position] = random.choice(alphabet)

    # Fisher-Yates
    for i in range(len(chars) - 1, 0, -1):
        j = random.randbelow(i + 1)
        chars[i], chars[j] = chars[j], chars[i]

    return "".join(chars)


def strength(password: str) -> PasswordStrength:
    score = 0
    feedback: List[str] = []

    if len(password) >= 12:
        score += 1
    else:
        feedback.append("Use at least 12 characters")

    if len(password) >= 16:
        score += 1

    has_lower = any("a" <= c <= "z" for c in password)
    has_upper = any("A" <= c <= "Z" for c in password)
    has_digit = any("0" <= c <= "9" for c in password)
    has_symbol = any(not _is_ascii_alnum(c) for c in password)
    variety = sum([has_lower, has_upper, has_digit, has_symbol])

    if variety >= 3:
        score += 1
    else:
        feedback.append("Include uppercase, lowercase, numbers, and symbols")

    if variety == 4:
        score += 1

    if _REPEATING.search(password):
        score -= 1
        feedback.append("Avoid repeating characters")

    if _SEQUENTIAL.search(password):
        score -= 1
        feedback.append("Avoid sequential characters")

    score = max(0, min(4, score))

    return PasswordStrength(
        score=score,
        label=_label_for(score),
        feedback=feedback or ["Password looks good!"],
    )


def policy_from_password(password: str, length: Optional[int] = None) -> PasswordPolicy:
    """Infer the policy a hand-typed password satisfies.

    The length is clamped into the allowed range so the result can seed the
    generator again.
    """
    size = length if length is not None else len(password)
    size = max(MIN_PASSWORD_LENGTH, min(MAX_PASSWORD_LENGTH, size))
    return PasswordPolicy(
        length=size,
        include_uppercase=any(c in UPPERCASE for c in password),
        include_lowercase=any(c in LOWERCASE for c in password),
        include_numbers=any(c in NUMBERS for c in password),
        include_symbols=any(not _is_ascii_alnum(c) for c in password),
    )


def _is_ascii_alnum(c: str) -> bool:
    return c.isascii() and c.isalnum()


def _label_for(score: int) -> str:
    if score <= 1:
        return "Weak"
    if score == 2:
        return "Fair"
    if score == 3:
        return "Good"
    return "Strong"
