"""Total ordering and policy eligibility for versions."""

import re
from typing import Iterable, Optional, Union

from .models import Ordering, VersionToken
from .parser import parse

VersionLike = Union[str, VersionToken]

_QUALIFIER_FAMILY = re.compile(r"^[A-Za-z]+")


def _as_token(value: VersionLike) -> VersionToken:
    return value if isinstance(value, VersionToken) else parse(value)


def compare(a: VersionLike, b: VersionLike) -> Ordering:
    """Compare two versions.

    Numeric segments compare lexicographically with absent segments read as
    0. On a tie a version without qualifier is greater; two qualifiers are
    compared case-insensitively.
    """
    left, right = _as_token(a), _as_token(b)
    if left == right:
        return Ordering.EQUAL
    return Ordering.LESS if left < right else Ordering.GREATER


def qualifier_family(qualifier: Optional[str]) -> Optional[str]:
    """Leading alphabetic run of a qualifier, lower-cased ("RC1" -> "rc")."""
    if not qualifier:
        return None
    match = _QUALIFIER_FAMILY.match(qualifier)
    if match is None:
        return None
    return match.group(0).lower()


def is_eligible(version: VersionLike, rejected_qualifiers: Iterable[str]) -> bool:
    """Return False iff the version's qualifier matches a rejected qualifier.

    Matching is case-insensitive against the whole qualifier or its leading
    alphabetic run, so "1.0-RC1" is rejected by "rc". Versions without a
    qualifier are always eligible.
    """
    token = _as_token(version)
    if token.qualifier is None:
        return True
    rejected = {q.strip().lower() for q in rejected_qualifiers if q and q.strip()}
    if not rejected:
        return True
    if token.qualifier.lower() in rejected:
        return False
    return qualifier_family(token.qualifier) not in rejected


def latest(versions: Iterable[VersionLike]) -> Optional[VersionToken]:
    """Maximum version by ``compare`` or None for an empty input."""
    best: Optional[VersionToken] = None
    for value in versions:
        token = _as_token(value)
        if best is None or token > best:
            best = token
    return best
