"""Tests for the engine trace decorator."""

from dataclasses import dataclass

import pytest

from credit_engines.tracer import TRACE_EVENT, fingerprint, traced_engine
from credit_kernel.domain.types import OrderItem


@dataclass(frozen=True)
class _Verdict:
    is_valid: bool


@traced_engine("sample", "2.1", fingerprint_fields=("amount", "scale"))
def _sample(amount, scale=2):
    if amount < 0:
        raise ArithmeticError("negative")
    return _Verdict(is_valid=amount > 0)


def _traces(captured_logs):
    return [r for r in captured_logs() if r["message"] == TRACE_EVENT]


class TestFingerprint:

    def test_key_order_does_not_matter(self):
        assert fingerprint({"a": 1, "b": 2}) == fingerprint({"b": 2, "a": 1})

    def test_dataclasses_hash_by_value(self):
        assert fingerprint({"items": [OrderItem(price_cents=100)]}) == \
            fingerprint({"items": (OrderItem(price_cents=100),)})
        assert fingerprint({"items": [OrderItem(price_cents=100)]}) != \
            fingerprint({"items": [OrderItem(price_cents=101)]})

    def test_length(self):
        assert len(fingerprint({})) == 16


class TestTracedEngine:

    def test_outcome_ok(self, captured_logs):
        _sample(5)

        trace = _traces(captured_logs)[0]
        assert trace["outcome"] == "ok"
        assert trace["engine_name"] == "sample"
        assert trace["engine_version"] == "2.1"
        assert trace["duration_ms"] >= 0

    def test_outcome_invalid(self, captured_logs):
        _sample(0)

        assert _traces(captured_logs)[0]["outcome"] == "invalid"

    def test_error_is_traced_and_reraised(self, captured_logs):
        with pytest.raises(ArithmeticError):
            _sample(-1)

        trace = _traces(captured_logs)[0]
        assert trace["outcome"] == "error"
        assert trace["error_type"] == "ArithmeticError"
        assert trace["level"] == "WARNING"

    def test_defaults_are_part_of_the_fingerprint(self, captured_logs):
        _sample(5)
        _sample(5, scale=2)
        _sample(5, 3)

        fps = [t["input_fingerprint"] for t in _traces(captured_logs)]
        assert fps[0] == fps[1]
        assert fps[0] != fps[2]

    def test_unknown_fingerprint_field_rejected_at_decoration(self):
        with pytest.raises(TypeError, match="missing"):
            @traced_engine("bad", "1", fingerprint_fields=("missing",))
            def _bad(amount):
                return amount

    def test_metadata_exposed(self):
        assert (_sample.engine_name, _sample.engine_version) == ("sample", "2.1")
