"""Tests for device fingerprinting and token binding."""

import pytest

from brain_tracker.domain.exceptions import BindingMismatchException
from brain_tracker.domain.services.auth_service import AuthService
from brain_tracker.shared.middleware.auth_middleware import enforce_token_binding, extract_bearer_token
from brain_tracker.shared.middleware.fingerprint_middleware import compute_fingerprint


class TestComputeFingerprint:
    def test_explicit_header_wins(self):
        headers = {"x-device-fingerprint": "dev-A", "user-agent": "Mozilla/5.0"}

        assert compute_fingerprint(headers) == "dev-A"

    def test_derived_from_headers_is_stable(self):
        headers = {"user-agent": "Mozilla/5.0", "accept-language": "en-US"}

        first = compute_fingerprint(headers)
        assert first == compute_fingerprint(dict(headers))
        assert len(first) == 64

    def test_different_agents_differ(self):
        assert compute_fingerprint({"user-agent": "A"}) != compute_fingerprint({"user-agent": "B"})

    def test_malformed_header_ignored(self):
        headers = {"x-device-fingerprint": "<script>", "user-agent": "Mozilla/5.0"}

        assert compute_fingerprint(headers) == compute_fingerprint({"user-agent": "Mozilla/5.0"})

    def test_no_headers_no_fingerprint(self):
        assert compute_fingerprint({}) is None


class TestBinding:
    def test_matching_fingerprints_pass(self):
        enforce_token_binding({"fp": "dev-A"}, "dev-A", require_fingerprint=True)

    def test_mismatch_rejected(self):
        with pytest.raises(BindingMismatchException) as exc_info:
            enforce_token_binding({"fp": "dev-A"}, "dev-B", require_fingerprint=False)
        assert exc_info.value.reason == "binding mismatch"
        assert exc_info.value.status_code == 401

    @pytest.mark.parametrize("token_fp, request_fp", [
        (None, "dev-A"),
        ("unknown", "dev-A"),
        ("dev-A", None),
    ])
    def test_missing_side_tolerated_by_default(self, token_fp, request_fp):
        enforce_token_binding({"fp": token_fp}, request_fp, require_fingerprint=False)

    @pytest.mark.parametrize("token_fp, request_fp", [
        (None, "dev-A"),
        ("unknown", "dev-A"),
        ("dev-A", None),
    ])
    def test_missing_side_rejected_when_required(self, token_fp, request_fp):
        with pytest.raises(BindingMismatchException) as exc_info:
            enforce_token_binding({"fp": token_fp}, request_fp, require_fingerprint=True)
        assert exc_info.value.reason == "fingerprint missing"

    def test_non_ascii_fingerprints_compared(self):
        assert AuthService.binding_holds("appareil-é", "appareil-é")
        assert not AuthService.binding_holds("appareil-é", "appareil-e")


class TestBearerExtraction:
    @pytest.mark.parametrize("header, expected", [
        ("Bearer abc.def.ghi", "abc.def.ghi"),
        ("bearer abc", "abc"),
        ("Basic abc", None),
        ("Bearer", None),
        ("Bearer a b", None),
        ("", None),
        (None, None),
    ])
    def test_extract(self, header, expected):
        assert extract_bearer_token(header) == expected
