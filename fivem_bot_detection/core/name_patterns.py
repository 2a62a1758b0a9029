"""
Name shape predicates: whitelist of legitimate shapes and suspicious-shape detectors

All predicates are total: they accept any string (including empty) and
never raise.
"""

import re
from typing import Callable, List, Pattern

_VOWEL = re.compile(r'[aeiouAEIOU]')
_DIGIT = re.compile(r'[0-9]')
_LETTER = re.compile(r'[A-Za-z]')
_SPECIAL_CHAR = re.compile(r'[^a-zA-Z0-9\s]')

# Legitimate name shapes, checked in order (full match)
WHITELIST_PATTERNS: List[Pattern] = [re.compile(p) for p in (
    r'[A-Za-z]{2,20}',                         # letters only
    r'[A-Za-z]{2,10}[0-9]{1,4}',               # name + numbers
    r'[A-Za-z]{2,10}_[A-Za-z0-9]{1,10}',       # Name_identifier
    r'[A-Za-z]{2,10}\.[A-Za-z]{2,10}',         # First.Last
    r'[A-Za-z]{2,10}-[A-Za-z]{2,10}',          # First-Last
    r'[A-Za-z]{2,10}\s[A-Za-z]{2,10}',         # First Last
    r'[A-Za-z]{1,3}[0-9]{2,4}',                # short letters + numbers
    r'[A-Za-z]{2,15}[0-9]{1,3}',               # longer name + few numbers
    r'[A-Za-z]{3,12}',
    r'[A-Za-z]{2,8}[0-9]{2,6}',
    r'[A-Za-z]{1,2}[0-9]{3,8}',
    r'[A-Za-z]{4,15}',
    r'[A-Za-z]{2,10}[_\-.][A-Za-z0-9]{2,10}',  # separated names
    r'[A-Za-z]{2,8}[0-9]{1,4}[A-Za-z]{0,4}',   # mixed
    r'[A-Za-z]{3,12}[0-9]{1,2}',
    r'[A-Za-z]{2,6}[0-9]{2,4}[A-Za-z]{0,3}',
)]

# Common bot name shapes used by the identity scorer (search, case-insensitive)
SUSPICIOUS_NAME_PATTERNS: List[Pattern] = [
    re.compile(r'^[0-9]+$'),
    re.compile(r'^[a-zA-Z]{1,2}$'),
    re.compile(r'bot', re.IGNORECASE),
    re.compile(r'test', re.IGNORECASE),
    re.compile(r'admin', re.IGNORECASE),
    re.compile(r'player', re.IGNORECASE),
    re.compile(r'user', re.IGNORECASE),
    re.compile(r'guest', re.IGNORECASE),
    re.compile(r'^[^a-zA-Z0-9\s]+$'),
    re.compile(r'^.{1,3}$'),
]

# Structural families for the advanced detector (full match)
_BOT_SHAPES: List[Pattern] = [re.compile(p) for p in (
    r'[A-Za-z]{1,2}[0-9]{4,}',
    r'[0-9]{1,2}[A-Za-z]{4,}',
    r'[A-Za-z]+[0-9]+[A-Za-z]+[0-9]+',
    r'[A-Za-z]{2,}[0-9]{2,}[A-Za-z]{2,}[0-9]{2,}',
    r'[A-Za-z0-9]{8,}',
    r'[A-Za-z]{1,3}[0-9]{6,}',
    r'[0-9]{6,}[A-Za-z]{1,3}',
    r'[A-Za-z]+[0-9]+',
    r'[0-9]+[A-Za-z]+',
    r'[A-Za-z]{1,2}[0-9]{1,2}[A-Za-z]{1,2}[0-9]{1,2}',
    r'[A-Za-z0-9]{10,}',
    r'[A-Za-z]{2,}[0-9]{2,}[A-Za-z]{2,}',
    r'[0-9]{2,}[A-Za-z]{2,}[0-9]{2,}',
    r'[A-Za-z]+[0-9]+[A-Za-z]+',
    r'[0-9]+[A-Za-z]+[0-9]+',
    r'[A-Za-z]+[0-9]{3,}[A-Za-z]+',
    r'[0-9]+[A-Za-z]{3,}[0-9]+',
    r'[A-Za-z]{2,}[0-9]{2,}[A-Za-z]{2,}[0-9]{2,}[A-Za-z]{2,}',
    r'[0-9]{2,}[A-Za-z]{2,}[0-9]{2,}[A-Za-z]{2,}[0-9]{2,}',
    r'[A-Za-z]+[0-9]+[A-Za-z]+[0-9]+[A-Za-z]+',
    r'[0-9]+[A-Za-z]+[0-9]+[A-Za-z]+[0-9]+',
    r'[A-Za-z]{1,2}[0-9]{4,}[A-Za-z]{1,2}',
    r'[0-9]{1,2}[A-Za-z]{4,}[0-9]{1,2}',
)]

_REPETITIVE_SHAPES: List[Pattern] = [re.compile(p) for p in (
    r'(.{2,})\1+',
    r'[A-Za-z]{2}[0-9]{2}[A-Za-z]{2}[0-9]{2}',
    r'[0-9]{2}[A-Za-z]{2}[0-9]{2}[A-Za-z]{2}',
    r'[A-Za-z]{3}[0-9]{3}[A-Za-z]{3}',
    r'[0-9]{3}[A-Za-z]{3}[0-9]{3}',
)]

_ALNUM_6 = re.compile(r'[A-Za-z0-9]{6,}')
_ALNUM_8 = re.compile(r'[A-Za-z0-9]{8,}')
_ALNUM_10 = re.compile(r'[A-Za-z0-9]{10,}')
_ALNUM_12 = re.compile(r'[A-Za-z0-9]{12,}')
_ALNUM_20 = re.compile(r'[A-Za-z0-9]{20,}')
_LETTERS_THEN_DIGITS = re.compile(r'[A-Za-z]{2,}[0-9]{2,}')


def has_vowel(name: str) -> bool:
    return bool(_VOWEL.search(name))


def _count(pattern: Pattern, name: str) -> int:
    return len(pattern.findall(name))


# Composite checks, each (name) -> bool
_COMPOSITE_SHAPES: List[Callable[[str], bool]] = [
    lambda n: bool(_ALNUM_6.fullmatch(n)) and not has_vowel(n),
    lambda n: bool(_ALNUM_8.fullmatch(n)) and not has_vowel(n),
    lambda n: bool(_ALNUM_6.fullmatch(n)) and _count(_DIGIT, n) > 3,
    lambda n: bool(_ALNUM_6.fullmatch(n)) and _count(_LETTER, n) > 3 and _count(_DIGIT, n) > 3,
    lambda n: bool(_ALNUM_8.fullmatch(n)) and len(n) % 2 == 0,
    lambda n: bool(_ALNUM_10.fullmatch(n)) and len(n) % 2 == 0,
    lambda n: bool(_ALNUM_12.fullmatch(n)),
]


def is_whitelisted_name(name: str) -> bool:
    """True when the name has an obviously legitimate shape"""
    if not name:
        return False
    return any(pattern.fullmatch(name) for pattern in WHITELIST_PATTERNS)


def is_suspicious_name(name: str) -> bool:
    """Common bot naming shapes (numbers only, 'bot', 'guest', very short...)"""
    if not name or len(name) < 2:
        return True
    return any(pattern.search(name) for pattern in SUSPICIOUS_NAME_PATTERNS)


def has_excessive_special_chars(name: str) -> bool:
    """More than half of the characters are neither alphanumeric nor whitespace"""
    if not name:
        return False
    return _count(_SPECIAL_CHAR, name) / len(name) > 0.5


def is_advanced_suspicious_name(name: str) -> bool:
    """
    Broad structural detector: alternating letter/digit blocks, long
    alphanumeric runs without vowels, repeated substrings.

    Returns False for names too short for any shape (< 2 chars).
    """
    if not name or len(name) < 2:
        return False

    return (any(pattern.fullmatch(name) for pattern in _BOT_SHAPES) or
            any(check(name) for check in _COMPOSITE_SHAPES) or
            any(pattern.fullmatch(name) for pattern in _REPETITIVE_SHAPES))


def is_generated_pattern(name: str) -> bool:
    """Long (> 20) vowel-less alphanumeric string that is not letters-then-digits"""
    return (len(name) > 20 and
            bool(_ALNUM_20.fullmatch(name)) and
            not has_vowel(name) and
            not _LETTERS_THEN_DIGITS.match(name))
