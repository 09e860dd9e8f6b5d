"""
Unit tests for key extraction and the source key set
"""

from rowaudit.audit.keys import LookupResult, SourceKeySet, extract_key, normalize_key_part


class TestExtractKey:
    """Test extract_key()"""

    def test_key_order_and_stripping(self):
        assert extract_key([" 1 ", "x", "A "], [2, 0]) == ("A", "1")

    def test_short_row_and_null_give_empty(self):
        assert extract_key(["1", None], [1, 5]) == ("", "")


class TestNormalizeKeyPart:
    """Test normalize_key_part()"""

    def test_numbers_compare_by_value(self):
        assert normalize_key_part("007") == normalize_key_part("7") == "7"
        assert normalize_key_part("10.50") == "10.5"
        assert normalize_key_part("100") == "100"

    def test_text_is_stripped_only(self):
        assert normalize_key_part(" AB01 ") == "AB01"
        assert normalize_key_part(None) == ""

    def test_out_of_range_exponent_kept_as_text(self):
        assert normalize_key_part("1e9999999") == "1e9999999"


class TestSourceKeySet:
    """Test SourceKeySet membership"""

    def test_membership_is_normalised(self):
        keys = SourceKeySet([("007", "A")])

        assert ("7", "A") in keys
        assert (" 7", "A ") in keys
        assert ("8", "A") not in keys
        assert len(keys) == 1

    def test_non_tuple_not_member(self):
        assert "7" not in SourceKeySet([("7",)])


class TestLookupResult:
    def test_found(self):
        assert LookupResult(row=["1"]).found
        assert not LookupResult().found
        assert not LookupResult(error="boom").found
