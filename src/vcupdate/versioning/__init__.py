"""Version parsing, ordering and eligibility."""

from .models import Ordering, VersionToken
from .parser import is_dynamic, parse
from .comparator import compare, is_eligible, latest, qualifier_family

__all__ = [
    "Ordering",
    "VersionToken",
    "parse",
    "is_dynamic",
    "compare",
    "is_eligible",
    "latest",
    "qualifier_family",
]
