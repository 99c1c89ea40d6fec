"""Best-effort version string parsing."""

import re
from typing import List, Optional

from vcupdate.errors import VersionParseError
from .models import VersionToken

_SEPARATORS = ".-_+"
_LEADING_DIGITS = re.compile(r"^(\d+)(.*)$")
# "+" is kept: a trailing "+" marks a prefix selector
_QUALIFIER_LEAD = ".-_"
_DYNAMIC = re.compile(r"[\[\]()<>,]|\+$|^latest\.", re.IGNORECASE)


def parse(version_string: str) -> VersionToken:
    """Parse a version string into a VersionToken.

    Dot/dash-delimited numeric runs become segments; the first non-numeric
    run starts the qualifier, which keeps the rest of the string verbatim
    ("2.0.0-beta.2" -> segments (2, 0, 0), qualifier "beta.2").

    Raises:
        VersionParseError: if the string is empty or blank.
    """
    if version_string is None or not str(version_string).strip():
        raise VersionParseError("Empty version string")
    text = str(version_string).strip()

    segments: List[int] = []
    qualifier: Optional[str] = None
    pos = 0
    while pos < len(text):
        match = _LEADING_DIGITS.match(text[pos:])
        if match is None:
            qualifier = text[pos:]
            break
        digits, rest = match.group(1), match.group(2)
        segments.append(int(digits))
        pos += len(digits)
        if not rest:
            break
        if rest[0] in _SEPARATORS:
            pos += 1
            if pos >= len(text):
                if rest[0] == "+":
                    # "1+" selects a prefix; it is not "1"
                    qualifier = "+"
                break
            continue
        # "1.0rc1": the qualifier starts right after the digits
        qualifier = rest
        break

    if qualifier is not None:
        qualifier = qualifier.lstrip(_QUALIFIER_LEAD) or None
    return VersionToken(raw=text, segments=tuple(segments), qualifier=qualifier)


def is_dynamic(version_string: str) -> bool:
    """True for version selectors rather than pins.

    Covers ranges ("[1.0,2.0)", "[2.15, 3["), prefix selectors ("1.+",
    "+") and ``latest.release`` style selectors.
    """
    return bool(_DYNAMIC.search(str(version_string).strip()))
