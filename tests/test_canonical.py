"""Tests for rpc_mock.canonical."""

import json

import pytest
from hypothesis import given
from hypothesis import strategies as st

from rpc_mock.canonical import (
    CanonicalizationError,
    canonical_json,
    canonicalize,
    parse_json,
)

json_scalars = st.none() | st.booleans() | st.integers(-(2**31), 2**31) | st.text(max_size=10)
json_values = st.recursive(
    json_scalars,
    lambda children: st.lists(children, max_size=4)
    | st.dictionaries(st.text(max_size=6), children, max_size=4),
    max_leaves=12,
)


class TestCanonicalJson:
    def test_key_order_ignored(self):
        assert canonical_json(b'{"a":1,"b":2}') == canonical_json(b'{"b": 2, "a": 1}')

    def test_whitespace_ignored(self):
        assert canonical_json(b'{\n  "a" : [1, 2]\n}') == canonical_json(b'{"a":[1,2]}')

    def test_nested_key_order_ignored(self):
        left = b'{"outer": {"x": 1, "y": {"p": true, "q": null}}}'
        right = b'{"outer": {"y": {"q": null, "p": true}, "x": 1}}'
        assert canonical_json(left) == canonical_json(right)

    def test_array_order_matters(self):
        assert canonical_json(b"[1, 2]") != canonical_json(b"[2, 1]")

    def test_extra_key_differs(self):
        assert canonical_json(b'{"a":1}') != canonical_json(b'{"a":1,"b":2}')

    def test_numbers_compare_by_value(self):
        """1 and 1.0 are the same number."""
        assert canonical_json(b'{"n": 1}') == canonical_json(b'{"n": 1.0}')
        assert canonical_json(b"100") == canonical_json(b"1e2")

    def test_bool_is_not_number(self):
        assert canonical_json(b"true") != canonical_json(b"1")

    def test_string_is_not_number(self):
        assert canonical_json(b'"1"') != canonical_json(b"1")

    def test_accepts_str(self):
        assert canonical_json('{"a": "é"}') == canonical_json('{"a":"\\u00e9"}')

    def test_invalid_json_raises(self):
        with pytest.raises(CanonicalizationError, match="Invalid JSON"):
            canonical_json(b'{"a": ')

    def test_trailing_data_raises(self):
        with pytest.raises(CanonicalizationError):
            canonical_json(b'{"a": 1} {"b": 2}')

    def test_nan_rejected(self):
        with pytest.raises(CanonicalizationError):
            canonical_json(b'{"a": NaN}')

    def test_out_of_range_number_raises(self):
        with pytest.raises(CanonicalizationError, match="out of range"):
            canonical_json(b'{"a": 1e400}')

    def test_invalid_utf8_raises(self):
        with pytest.raises(CanonicalizationError):
            canonical_json(b'"\xff\xfe\xfa"')

    def test_error_is_value_error(self):
        with pytest.raises(ValueError):
            parse_json(b"nope")


class TestCanonicalize:
    def test_parsed_and_raw_agree(self):
        assert canonicalize({"b": [1, 2.5], "a": None}) == canonical_json(b'{"a":null,"b":[1,2.5]}')

    def test_tuple_treated_as_array(self):
        assert canonicalize((1, 2)) == canonicalize([1, 2])

    def test_infinity_raises(self):
        with pytest.raises(CanonicalizationError):
            canonicalize([float("-inf")])

    def test_unsupported_type_raises(self):
        with pytest.raises(CanonicalizationError, match="Unsupported"):
            canonicalize({"a": object()})

    @given(json_values)
    def test_roundtrip_is_stable(self, value):
        """Canonicalizing the canonical form yields the same bytes."""
        once = canonicalize(value)
        assert canonical_json(once) == once

    @given(st.dictionaries(st.text(max_size=6), json_values, max_size=6))
    def test_key_order_never_matters(self, mapping):
        """Reversing insertion order of keys leaves the canonical form unchanged."""
        reversed_mapping = dict(reversed(list(mapping.items())))
        assert canonicalize(mapping) == canonicalize(reversed_mapping)
        assert canonical_json(json.dumps(mapping, indent=3)) == canonicalize(reversed_mapping)
