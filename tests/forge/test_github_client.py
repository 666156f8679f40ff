# The MIT License (MIT)
# Copyright © 2025 Entrius

"""
Unit tests for GitHubClient and the rate limit helpers.

No network access: the requests session is a Mock.
"""

import time
from unittest.mock import Mock, patch

import pytest
import requests
from requests.structures import CaseInsensitiveDict

from forgelink.forge.client import (
    ForgeNotFoundError,
    ForgeRequestError,
    GitHubClient,
    log_rate_limit,
    make_headers,
    parse_poll_interval,
)

# ============================================================================
# Helpers
# ============================================================================


def make_response(status_code=200, json_data=None, headers=None, json_error=False):
    response = Mock()
    response.status_code = status_code
    response.headers = CaseInsensitiveDict(headers or {})
    if json_error:
        response.json.side_effect = ValueError('Expecting value')
    else:
        response.json.return_value = json_data
    return response


@pytest.fixture
def session():
    session = Mock()
    session.headers = {}
    return session


@pytest.fixture
def client(session):
    return GitHubClient('fake_github_token', 'fish-shell', 'fish-shell', session=session)


# ============================================================================
# Headers and parsing helpers
# ============================================================================


class TestHeaders:
    def test_make_headers(self):
        headers = make_headers('abc')
        assert headers['Authorization'] == 'token abc'
        assert headers['Accept'] == 'application/vnd.github.v3+json'

    def test_client_installs_auth_headers(self, client, session):
        assert session.headers['Authorization'] == 'token fake_github_token'
        assert client.full_name == 'fish-shell/fish-shell'


class TestParsePollInterval:
    def test_present(self):
        assert parse_poll_interval(make_response(headers={'X-Poll-Interval': '60'})) == 60

    def test_case_insensitive(self):
        assert parse_poll_interval(make_response(headers={'x-poll-interval': '15'})) == 15

    def test_missing(self):
        assert parse_poll_interval(make_response()) is None

    @patch('forgelink.forge.client.bt.logging')
    def test_malformed(self, mock_logging):
        assert parse_poll_interval(make_response(headers={'X-Poll-Interval': 'soon'})) is None

    def test_negative_is_clamped(self):
        assert parse_poll_interval(make_response(headers={'X-Poll-Interval': '-5'})) == 0


class TestRateLimit:
    @patch('forgelink.forge.client.bt.logging')
    def test_returns_remaining_quietly(self, mock_logging):
        reset = int(time.time()) + 120
        remaining = log_rate_limit(
            make_response(
                headers={
                    'X-RateLimit-Limit': '5000',
                    'X-RateLimit-Remaining': '4999',
                    'X-RateLimit-Reset': str(reset),
                }
            )
        )
        assert remaining == 4999
        mock_logging.warning.assert_not_called()
        mock_logging.info.assert_not_called()

    def test_absent_headers(self):
        assert log_rate_limit(make_response()) is None

    @patch('forgelink.forge.client.bt.logging')
    def test_malformed_headers_are_ignored(self, mock_logging):
        response = make_response(headers={'X-RateLimit-Limit': 'lots', 'X-RateLimit-Remaining': '3'})
        assert log_rate_limit(response) is None
        mock_logging.warning.assert_not_called()

    @patch('forgelink.forge.client.bt.logging')
    def test_warns_when_nearly_exhausted(self, mock_logging):
        log_rate_limit(
            make_response(
                headers={'X-RateLimit-Limit': '60', 'X-RateLimit-Remaining': '3', 'X-RateLimit-Reset': '1'}
            )
        )
        mock_logging.warning.assert_called_once()
        assert '3/60' in mock_logging.warning.call_args.args[0]

    @patch('forgelink.forge.client.bt.logging')
    def test_info_below_ten_percent(self, mock_logging):
        log_rate_limit(make_response(headers={'X-RateLimit-Limit': '5000', 'X-RateLimit-Remaining': '400'}))
        mock_logging.info.assert_called_once()
        mock_logging.warning.assert_not_called()

    @patch('forgelink.forge.client.GitHubClient._get')
    @patch('forgelink.forge.client.log_rate_limit')
    def test_client_checks_quota_on_success(self, mock_log_rate_limit, mock_get, client):
        mock_get.return_value = make_response(json_data={'number': 1})
        client.get_issue(1)
        mock_log_rate_limit.assert_called_once_with(mock_get.return_value)


# ============================================================================
# get_issue
# ============================================================================


class TestGetIssue:
    def test_success(self, client, session):
        session.get.return_value = make_response(json_data={'number': 4521, 'title': 'Crash'})

        assert client.get_issue(4521) == {'number': 4521, 'title': 'Crash'}
        url = session.get.call_args.args[0]
        assert url == 'https://api.github.com/repos/fish-shell/fish-shell/issues/4521'

    def test_not_found(self, client, session):
        session.get.return_value = make_response(status_code=404)
        with pytest.raises(ForgeNotFoundError):
            client.get_issue(4521)

    @pytest.mark.parametrize('status', [401, 403, 410, 500, 502])
    def test_other_status_is_request_error(self, client, session, status):
        session.get.return_value = make_response(status_code=status)
        with pytest.raises(ForgeRequestError) as exc_info:
            client.get_issue(4521)
        assert exc_info.value.status_code == status

    def test_transport_error(self, client, session):
        session.get.side_effect = requests.exceptions.ConnectionError('connection reset')
        with pytest.raises(ForgeRequestError):
            client.get_issue(4521)

    def test_bad_json(self, client, session):
        session.get.return_value = make_response(json_error=True)
        with pytest.raises(ForgeRequestError):
            client.get_issue(4521)


# ============================================================================
# list_repo_events
# ============================================================================


class TestListRepoEvents:
    def test_success(self, client, session):
        session.get.return_value = make_response(
            json_data=[{'id': '1'}],
            headers={'ETag': 'W/"abc"', 'X-Poll-Interval': '60'},
        )

        result = client.list_repo_events()

        assert result.events == [{'id': '1'}]
        assert result.etag == 'W/"abc"'
        assert result.poll_interval == 60
        assert result.not_modified is False
        assert session.get.call_args.kwargs['headers'] is None

    def test_sends_if_none_match(self, client, session):
        session.get.return_value = make_response(json_data=[])

        client.list_repo_events('W/"abc"')

        assert session.get.call_args.kwargs['headers'] == {'If-None-Match': 'W/"abc"'}
        assert session.get.call_args.args[0].endswith('/repos/fish-shell/fish-shell/events')

    def test_not_modified(self, client, session):
        session.get.return_value = make_response(status_code=304, headers={'X-Poll-Interval': '90'})

        result = client.list_repo_events('W/"abc"')

        assert result.not_modified is True
        assert result.events == []
        assert result.etag == 'W/"abc"'
        assert result.poll_interval == 90

    def test_server_error(self, client, session):
        session.get.return_value = make_response(status_code=503)
        with pytest.raises(ForgeRequestError):
            client.list_repo_events()

    def test_unexpected_payload(self, client, session):
        session.get.return_value = make_response(json_data={'message': 'oops'})
        with pytest.raises(ForgeRequestError):
            client.list_repo_events()

    def test_timeout(self, client, session):
        session.get.side_effect = requests.exceptions.Timeout('read timed out')
        with pytest.raises(ForgeRequestError):
            client.list_repo_events()
