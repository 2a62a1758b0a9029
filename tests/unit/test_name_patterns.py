"""
Tests for the name shape predicates
"""

import pytest

from fivem_bot_detection.core.name_patterns import (
    has_excessive_special_chars,
    has_vowel,
    is_advanced_suspicious_name,
    is_generated_pattern,
    is_suspicious_name,
    is_whitelisted_name,
)


LEGITIMATE_NAMES = [
    "John", "John123", "John_Doe", "John.Smith", "Mary-Jane", "John Smith",
    "xX99", "ab12cd", "Christopher12", "ab12345678", "Alexandria",
]


class TestWhitelist:
    """Legitimate name shapes"""

    @pytest.mark.parametrize("name", LEGITIMATE_NAMES)
    def test_legitimate_shapes(self, name):
        assert is_whitelisted_name(name) is True

    @pytest.mark.parametrize("name", ["", "a", "1234567", "xk7q2mzb9pab", "!!!!", "a b c d"])
    def test_rejected_shapes(self, name):
        assert is_whitelisted_name(name) is False

    def test_whole_name_must_match(self):
        """Prefix matches are not enough"""
        assert is_whitelisted_name("John!") is False


class TestSuspiciousName:
    """Identity-scorer name heuristics"""

    @pytest.mark.parametrize("name", ["bot123", "TestAccount", "Guest", "xAdminx", "12345", "ab", "!!!!"])
    def test_flags_common_bot_names(self, name):
        assert is_suspicious_name(name) is True

    @pytest.mark.parametrize("name", ["", "a"])
    def test_too_short_is_suspicious(self, name):
        assert is_suspicious_name(name) is True

    @pytest.mark.parametrize("name", ["Jonathan", "Marcus22", "Lena Berg"])
    def test_normal_names(self, name):
        assert is_suspicious_name(name) is False


class TestSpecialCharacters:

    def test_majority_special(self):
        assert has_excessive_special_chars("!!!a") is True

    def test_exactly_half_is_not_excessive(self):
        assert has_excessive_special_chars("!!aa") is False

    def test_whitespace_is_not_special(self):
        assert has_excessive_special_chars("a   b") is False

    def test_empty(self):
        assert has_excessive_special_chars("") is False


class TestAdvancedDetector:

    @pytest.mark.parametrize("name", ["", "a", "Z"])
    def test_too_short_never_flagged(self, name):
        assert is_advanced_suspicious_name(name) is False

    @pytest.mark.parametrize("name", ["xk7q2mzb9pab", "ab1234", "abab", "aa11bb22", "zzzzzzzzzzzz"])
    def test_structural_shapes(self, name):
        assert is_advanced_suspicious_name(name) is True

    @pytest.mark.parametrize("name", ["John Smith", "Mary-Jane", "!!!!!!!!aaaaaaa"])
    def test_non_alphanumeric_shapes_pass(self, name):
        assert is_advanced_suspicious_name(name) is False

    def test_repetition_does_not_span_lines(self):
        assert is_advanced_suspicious_name("ab\nab\n") is False

    @pytest.mark.parametrize("name", ["", "\n", "éè", "\U0001f600" * 30, "a" * 500])
    def test_total_on_arbitrary_input(self, name):
        assert is_advanced_suspicious_name(name) in (True, False)


class TestGeneratedPattern:

    def test_long_vowelless_alphanumeric(self):
        assert is_generated_pattern("bcdfghjklmnpqrstvwxyz1") is True

    def test_length_must_exceed_twenty(self):
        name = "bcdfghjklmnpqrstvwxz"
        assert len(name) == 20
        assert is_generated_pattern(name) is False

    def test_vowel_disqualifies(self):
        assert is_generated_pattern("bcdfghjklmnpqrstvwxyza") is False

    def test_letters_then_digits_prefix_disqualifies(self):
        assert is_generated_pattern("bcdfg12hjklmnpqrstvwxz") is False

    def test_non_alphanumeric_disqualifies(self):
        assert is_generated_pattern("bcdfghjklm-npqrstvwxyz") is False

    def test_has_vowel(self):
        assert has_vowel("bcdE") is True
        assert has_vowel("bcdfy") is False
