"""Tests for version parsing, ordering and eligibility."""

import itertools

import pytest

from vcupdate.errors import VersionParseError
from vcupdate.versioning import Ordering, compare, is_dynamic, is_eligible, latest, parse, qualifier_family


SAMPLE_VERSIONS = [
    "1", "1.0", "1.0.0", "1.0.1", "1.1", "1.10", "2.0-alpha", "2.0-ALPHA", "2.0-beta1",
    "2.0-rc1", "2.0-RC2", "2.0", "2.0.0.Final", "30.0-jre", "31.0-jre", "31.0-rc1",
    "1.0rc1", "v1.2", "2.15.0", "2.16.0", "0.9.9-SNAPSHOT", "10.0",
]


class TestParse:
    """Tests for parse()."""

    def test_numeric_segments_and_qualifier(self):
        token = parse("30.0-jre")
        assert token.segments == (30, 0)
        assert token.qualifier == "jre"
        assert token.raw == "30.0-jre"

    def test_qualifier_keeps_rest_of_string(self):
        token = parse("2.0.0-beta.2")
        assert token.segments == (2, 0, 0)
        assert token.qualifier == "beta.2"

    def test_qualifier_glued_to_digits(self):
        token = parse("1.0rc1")
        assert token.segments == (1, 0)
        assert token.qualifier == "rc1"

    def test_no_leading_digits(self):
        token = parse("v1.2")
        assert token.segments == ()
        assert token.qualifier == "v1.2"
        assert token.major == 0

    def test_plain_version_has_no_qualifier(self):
        assert parse("1.2.3").qualifier is None

    @pytest.mark.parametrize("value", ["", "   ", None])
    def test_empty_raises(self, value):
        with pytest.raises(VersionParseError):
            parse(value)

    @pytest.mark.parametrize("value, segments", [("1.+", (1,)), ("1+", (1,)), ("+", ())])
    def test_prefix_selector_keeps_plus(self, value, segments):
        token = parse(value)
        assert token.segments == segments
        assert token.qualifier == "+"

    def test_build_metadata_is_qualifier(self):
        assert parse("1.0+build.5").qualifier == "build.5"

    @pytest.mark.parametrize("value", [
        "1.+", "+", "[1.0,2.0)", "[2.15, 3[", "(,1.0]", "latest.release", "latest.integration",
    ])
    def test_dynamic_selectors(self, value):
        assert is_dynamic(value) is True

    @pytest.mark.parametrize("value", ["1.0", "30.0-jre", "1.0+build.5", "2.0.0.Final"])
    def test_pinned_versions(self, value):
        assert is_dynamic(value) is False


class TestCompare:
    """Tests for compare()."""

    def test_missing_segments_are_zero(self):
        assert compare("1.0", "1.0.0") is Ordering.EQUAL
        assert compare("1", "1.0.0") is Ordering.EQUAL

    def test_prefix_selector_differs_from_pin(self):
        assert compare("1.+", "1") is Ordering.LESS
        assert compare("1+", "1.0") is Ordering.LESS

    def test_numeric_not_lexicographic(self):
        assert compare("1.10", "1.9") is Ordering.GREATER

    def test_release_outranks_qualified(self):
        assert compare("2.0", "2.0-rc1") is Ordering.GREATER
        assert compare("2.0-rc1", "2.0") is Ordering.LESS

    def test_qualifiers_case_insensitive(self):
        assert compare("2.0-RC1", "2.0-rc1") is Ordering.EQUAL
        assert compare("2.0-alpha", "2.0-Beta") is Ordering.LESS

    def test_numbers_win_over_qualifier(self):
        assert compare("31.0-jre", "30.0-jre") is Ordering.GREATER
        assert compare("31.0-rc1", "31.0-jre") is Ordering.GREATER

    def test_strict_total_order(self):
        """Exactly one relation holds and ordering is transitive."""
        tokens = [parse(v) for v in SAMPLE_VERSIONS]
        for a, b in itertools.product(tokens, repeat=2):
            relations = [a < b, a == b, a > b]
            assert relations.count(True) == 1, (a.raw, b.raw)
            assert compare(a, b) is {Ordering.LESS: Ordering.GREATER,
                                     Ordering.EQUAL: Ordering.EQUAL,
                                     Ordering.GREATER: Ordering.LESS}[compare(b, a)]
        for a, b, c in itertools.product(tokens, repeat=3):
            if a < b and b < c:
                assert a < c, (a.raw, b.raw, c.raw)

    def test_equal_tokens_hash_equal(self):
        assert hash(parse("1.0")) == hash(parse("1.0.0"))
        assert len({parse("1.0"), parse("1.0.0"), parse("1.0.1")}) == 2

    def test_latest(self):
        assert latest(["30.0-jre", "31.0-jre", "31.0-rc1"]).raw == "31.0-rc1"
        assert latest([]) is None


class TestEligibility:
    """Tests for is_eligible()."""

    def test_rejected_qualifier_case_insensitive(self):
        assert is_eligible("1.0-RC1", {"rc"}) is False
        assert is_eligible("1.0-rc1", {"RC"}) is False

    def test_unqualified_always_eligible(self):
        assert is_eligible("1.0", {"rc"}) is True
        assert is_eligible("1.0", {"alpha", "beta"}) is True

    def test_other_qualifier_is_eligible(self):
        assert is_eligible("31.0-jre", {"rc"}) is True

    def test_milestone_family(self):
        assert is_eligible("5.0.0-M3", {"m"}) is False
        assert is_eligible("5.0.0-M3", {"rc"}) is True

    def test_whole_qualifier_match(self):
        assert is_eligible("1.0-preview.2", {"preview"}) is False

    def test_empty_rejection_set(self):
        assert is_eligible("1.0-alpha", set()) is True

    def test_deterministic(self):
        results = {is_eligible("2.0-Beta3", {"beta"}) for _ in range(10)}
        assert results == {False}

    def test_qualifier_family(self):
        assert qualifier_family("RC1") == "rc"
        assert qualifier_family("1a") is None
        assert qualifier_family(None) is None
