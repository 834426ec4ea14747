"""Tests for access control expression parsing."""

import itertools

import pytest

from credvault.access_control import (
    ACCESS_CONTROL_OPTIONS,
    AccessControlTerm,
    parse_access_control,
    validate_access_control,
)
from credvault.errors import (
    AccessControlError,
    DuplicateTermError,
    InvalidSyntaxError,
)


# ── Vocabulary ────────────────────────────────────────────────────────


class TestVocabulary:
    def test_options_match_enum(self):
        assert ACCESS_CONTROL_OPTIONS == [
            "UserPresence",
            "BiometryCurrentSet",
            "BiometryAnySet",
            "DevicePasscode",
            "Watch",
            "ApplicationPassword",
        ]

    def test_terms_are_strings(self):
        assert AccessControlTerm.WATCH == "Watch"

    def test_no_term_contains_a_conjunction(self):
        for term in ACCESS_CONTROL_OPTIONS:
            assert "And" not in term
            assert "Or" not in term


# ── Valid Expressions ─────────────────────────────────────────────────


class TestValidExpressions:
    def test_single_term(self):
        assert validate_access_control("UserPresence") == ["UserPresence"]

    def test_two_terms_and(self):
        assert validate_access_control("UserPresenceAndBiometryAnySet") == [
            "UserPresence",
            "BiometryAnySet",
        ]

    def test_two_terms_or(self):
        assert validate_access_control("DevicePasscodeOrWatch") == ["DevicePasscode", "Watch"]

    def test_whitespace_around_conjunctions(self):
        assert validate_access_control("UserPresence And Watch") == ["UserPresence", "Watch"]
        assert validate_access_control("UserPresence  Or\tWatch") == ["UserPresence", "Watch"]

    def test_all_terms_mixed_conjunctions(self):
        raw = "UserPresenceAndBiometryCurrentSetOrBiometryAnySetAndDevicePasscodeOrWatchAndApplicationPassword"
        assert validate_access_control(raw) == ACCESS_CONTROL_OPTIONS

    @pytest.mark.parametrize("count", [1, 2, 3])
    def test_ordered_terms_returned(self, count):
        for terms in itertools.permutations(ACCESS_CONTROL_OPTIONS, count):
            for conjunctions in itertools.product(["And", "Or"], repeat=count - 1):
                raw = terms[0] + "".join(c + t for c, t in zip(conjunctions, terms[1:]))
                assert validate_access_control(raw) == list(terms)

    def test_stripping_conjunctions_reconstructs_input(self):
        raw = "WatchOrUserPresenceAndDevicePasscode"
        expression = parse_access_control(raw)
        rebuilt = expression.terms[0] + "".join(
            c + t for c, t in zip(expression.conjunctions, expression.terms[1:])
        )
        assert rebuilt == raw

    def test_conjunctions_recorded(self):
        expression = parse_access_control("UserPresenceOrWatchAndDevicePasscode")
        assert expression.terms == ("UserPresence", "Watch", "DevicePasscode")
        assert expression.conjunctions == ("Or", "And")
        assert str(expression) == "UserPresenceOrWatchAndDevicePasscode"

    def test_and_or_differ_only_in_conjunctions(self):
        with_and = parse_access_control("UserPresenceAndWatch")
        with_or = parse_access_control("UserPresenceOrWatch")
        assert with_and.terms == with_or.terms
        assert with_and.conjunctions != with_or.conjunctions

    def test_custom_vocabulary(self):
        assert validate_access_control("AlphaOrBeta", ["Alpha", "Beta"]) == ["Alpha", "Beta"]

    def test_vocabulary_is_literal(self):
        with pytest.raises(InvalidSyntaxError):
            validate_access_control("AxB", ["A.B"])


# ── Syntax Errors ─────────────────────────────────────────────────────


class TestInvalidSyntax:
    @pytest.mark.parametrize(
        "raw",
        [
            "",
            "userpresence",
            "USERPRESENCE",
            "UserPresenceAndInvalid",
            "AndUserPresence",
            "UserPresenceAnd",
            "UserPresence,Watch",
            "UserPresenceAndAndWatch",
            "UserPresenceandWatch",
            "UserPresenceORWatch",
            "UserPresenceWatch",
            " UserPresence",
            "UserPresence ",
            "And",
            "UserPresence\x0bAndWatch",
            "UserPresence\xa0AndWatch",
            "UserPresence\u2003Or\u3000Watch",
        ],
    )
    def test_rejected(self, raw):
        with pytest.raises(InvalidSyntaxError):
            validate_access_control(raw)

    @pytest.mark.parametrize("index", range(3))
    def test_changed_case_rejected(self, index):
        terms = ["UserPresence", "BiometryAnySet", "Watch"]
        terms[index] = terms[index].lower()
        with pytest.raises(InvalidSyntaxError):
            validate_access_control("And".join(terms))

    def test_error_carries_input(self):
        with pytest.raises(InvalidSyntaxError) as exc_info:
            validate_access_control("UserPresence,Watch")
        assert exc_info.value.raw == "UserPresence,Watch"
        assert "UserPresence,Watch" in str(exc_info.value)

    def test_empty_vocabulary(self):
        with pytest.raises(InvalidSyntaxError):
            validate_access_control("UserPresence", [])

    def test_is_value_error(self):
        with pytest.raises(ValueError):
            validate_access_control("nope")


# ── Duplicate Terms ───────────────────────────────────────────────────


class TestDuplicateTerms:
    def test_repeated_term(self):
        with pytest.raises(DuplicateTermError) as exc_info:
            validate_access_control("UserPresenceAndUserPresence")
        assert exc_info.value.term == "UserPresence"
        assert "UserPresence" in str(exc_info.value)

    def test_repeat_with_whitespace(self):
        with pytest.raises(DuplicateTermError) as exc_info:
            validate_access_control("Watch Or Watch")
        assert exc_info.value.term == "Watch"

    @pytest.mark.parametrize("position", range(3))
    def test_repeat_in_any_position(self, position):
        terms = ["UserPresence", "DevicePasscode", "Watch"]
        terms.insert(position, "BiometryAnySet")
        terms.append("BiometryAnySet")
        with pytest.raises(DuplicateTermError) as exc_info:
            validate_access_control("Or".join(terms))
        assert exc_info.value.term == "BiometryAnySet"

    def test_first_repeat_reported(self):
        raw = "WatchAndDevicePasscodeAndDevicePasscodeAndWatch"
        with pytest.raises(DuplicateTermError) as exc_info:
            validate_access_control(raw)
        assert exc_info.value.term == "DevicePasscode"

    def test_is_access_control_error(self):
        with pytest.raises(AccessControlError):
            validate_access_control("WatchOrWatch")
