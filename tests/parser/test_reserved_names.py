import keyword

import pytest

from tplc.parser import ReservedNameError, is_reserved
from tplc.parser.keywords import KWS, MAX_KW_LEN, RESERVED_WORDS


class TestReservedTable:
    @pytest.mark.parametrize("name", ["for", "class", "lambda", "nonlocal", "self", "None", "match", "type", "_"])
    def test_reserved(self, name):
        assert is_reserved(name)

    @pytest.mark.parametrize("name", ["card", "fo", "forr", "", "x" * 40, "Self", "ifelse", "types"])
    def test_not_reserved(self, name):
        assert not is_reserved(name)

    def test_every_python_keyword_is_covered(self):
        for word in keyword.kwlist:
            assert is_reserved(word), word

    def test_table_contents_are_fixed(self):
        entries = {entry.rstrip(b"\0").decode() for bucket in KWS for entry in bucket}
        assert len(entries) == 40
        assert entries == set(RESERVED_WORDS)
        assert {"type", "match", "case", "_", "self"} <= entries

    def test_table_buckets_by_length(self):
        assert MAX_KW_LEN == 8
        for length, bucket in enumerate(KWS):
            for entry in bucket:
                assert len(entry.rstrip(b"\0")) == length
                assert len(entry) == MAX_KW_LEN


class TestReservedMacroNames:
    def test_macro_named_after_keyword(self, parse):
        with pytest.raises(ReservedNameError, match="'while' is not a valid name for a macro"):
            parse("{% macro while %}{% endmacro %}")

    def test_macro_named_type_is_rejected(self, parse):
        with pytest.raises(ReservedNameError, match="'type' is not a valid name for a macro"):
            parse("{% macro type() %}{% endmacro %}")

    def test_ordinary_macro_name(self, parse):
        assert parse("{% macro whilst %}{% endmacro %}")[0].name == "whilst"
