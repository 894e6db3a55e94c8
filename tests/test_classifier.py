"""Tests for credential classification."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1] / 'backend' / 'src'))

from checkd.auth.classifier import (  # noqa: E402
    NO_CREDENTIAL,
    AccessCredential,
    DeviceCredential,
    classify,
    find_header,
)


class TestFindHeader:
    def test_lookup_is_case_insensitive(self) -> None:
        assert find_header({'x-apple-device-token': 'abc'}, 'X-Apple-Device-Token') == 'abc'

    def test_missing_header_is_none(self) -> None:
        assert find_header({'Other': '1'}, 'X-Apple-Device-Token') is None

    def test_none_headers(self) -> None:
        assert find_header(None, 'anything') is None


class TestClassify:
    @pytest.mark.parametrize(
        'headers',
        [None, {}, {'Authorization': 'Bearer abc'}, {'User-Agent': 'checkr/1.0'}],
    )
    def test_no_recognized_header(self, headers) -> None:
        assert classify(headers) is NO_CREDENTIAL

    def test_access_assertion_selected(self) -> None:
        credential = classify({'cf-access-jwt-assertion': 'jwt-value'})
        assert credential == AccessCredential(token='jwt-value')

    def test_access_assertion_wins_over_device_token(self) -> None:
        credential = classify(
            {
                'X-Apple-Device-Token': 'device',
                'X-Apple-Device-Development': 'true',
                'Cf-Access-Jwt-Assertion': 'jwt-value',
            }
        )
        assert isinstance(credential, AccessCredential)
        assert credential.token == 'jwt-value'

    def test_empty_access_header_still_selects_access_path(self) -> None:
        credential = classify({'Cf-Access-Jwt-Assertion': '', 'X-Apple-Device-Token': 'd'})
        assert credential == AccessCredential(token='')

    def test_device_token_production_by_default(self) -> None:
        credential = classify({'X-Apple-Device-Token': 'device'})
        assert credential == DeviceCredential(token='device', development=False)

    def test_device_token_sandbox_flag(self) -> None:
        credential = classify(
            {'X-Apple-Device-Token': 'device', 'x-apple-device-development': 'true'}
        )
        assert credential == DeviceCredential(token='device', development=True)

    @pytest.mark.parametrize('flag', ['false', 'TRUE', '1', 'yes', ''])
    def test_other_development_values_route_to_production(self, flag) -> None:
        credential = classify(
            {'X-Apple-Device-Token': 'device', 'X-Apple-Device-Development': flag}
        )
        assert isinstance(credential, DeviceCredential)
        assert credential.development is False

    def test_token_not_in_repr(self) -> None:
        assert 'secret-device' not in repr(DeviceCredential(token='secret-device'))
