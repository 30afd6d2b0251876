import pytest

from autopaint.llm.classify import ResponseKind, classify_response, find_overload_marker


class TestClassifyResponse:
    def test_ok(self):
        verdict = classify_response(200, '{"candidates": []}')
        assert verdict.ok
        assert verdict.kind is ResponseKind.OK

    def test_rate_limit_text_with_200_is_overload(self):
        verdict = classify_response(200, '{"message": "rate limit reached"}')
        assert verdict.kind is ResponseKind.OVERLOAD
        assert "rate limit" in verdict.reason

    @pytest.mark.parametrize("body", ["Model is OVERLOADED", "Quota exceeded", "RESOURCE_EXHAUSTED"])
    def test_markers_are_case_insensitive(self, body):
        assert classify_response(200, body).kind is ResponseKind.OVERLOAD

    @pytest.mark.parametrize("status", [429, 503])
    def test_throttling_status_codes(self, status):
        verdict = classify_response(status, "")
        assert verdict.kind is ResponseKind.OVERLOAD
        assert str(status) in verdict.reason

    def test_other_errors_are_unknown_provider_errors(self):
        verdict = classify_response(500, '{"error": {"message": "boom"}}')
        assert verdict.kind is ResponseKind.PROVIDER_ERROR
        assert verdict.reason == "Unknown provider error (HTTP 500)"

    def test_error_object_with_200_is_left_to_the_interpreter(self):
        verdict = classify_response(200, '{"error": {"message": "invalid model"}}')
        assert verdict.ok

    def test_find_marker(self):
        assert find_overload_marker("no problems here") == ""
        assert find_overload_marker(None) == ""
