"""
Test log sanitization and context processors.

Verifies that the OpenAI key and other secrets are redacted from logs.
"""

from interviewer.logging_config import (
    SERVICE_NAME,
    add_service_context,
    add_session_id,
    sanitize_secrets,
    session_id_var,
    set_session_id,
)


class TestLogSanitization:
    """Tests for secret sanitization processor."""

    def test_redact_api_key(self):
        event_dict = {
            'event': 'Connecting to OpenAI Realtime',
            'api_key': 'sk-1234567890abcdef',
        }
        result = sanitize_secrets(None, None, event_dict)

        assert result['api_key'] == 'sk***REDACTED***'
        assert result['event'] == 'Connecting to OpenAI Realtime'

    def test_redact_authorization_header(self):
        event_dict = {'authorization': 'Bearer sk-1234567890abcdef'}
        result = sanitize_secrets(None, None, event_dict)

        assert result['authorization'] == 'Be***REDACTED***'

    def test_redact_ephemeral_client_secret(self):
        event_dict = {'client_secret': 'ek_abcdef123456', 'ephemeral_key': 'ek_1'}
        result = sanitize_secrets(None, None, event_dict)

        assert result['client_secret'] == 'ek***REDACTED***'
        assert result['ephemeral_key'] == '***REDACTED***'

    def test_case_insensitive_matching(self):
        event_dict = {'API_KEY': 'sk-test', 'Password': 'secret'}
        result = sanitize_secrets(None, None, event_dict)

        assert 'REDACTED' in result['API_KEY']
        assert 'REDACTED' in result['Password']

    def test_nested_dict_sanitization(self):
        event_dict = {
            'event': 'Config loaded',
            'realtime': {
                'api_key': 'sk-nested-key',
                'model': 'gpt-realtime',
                'headers': {'Authorization': 'Bearer sk-nested-key'},
            },
        }
        result = sanitize_secrets(None, None, event_dict)

        assert 'REDACTED' in result['realtime']['api_key']
        assert result['realtime']['model'] == 'gpt-realtime'
        assert 'REDACTED' in result['realtime']['headers']['Authorization']

    def test_preserve_interview_fields(self):
        event_dict = {
            'event': '🔧 Tool call finalized',
            'call_id': 'call_123',
            'tool': 'complete_interview',
            'outcome': 'parsed',
            'has_summary': True,
        }
        result = sanitize_secrets(None, None, event_dict)

        assert result == event_dict

    def test_empty_and_none_preserved(self):
        result = sanitize_secrets(None, None, {'api_key': '', 'token': None})

        assert result['api_key'] == ''
        assert result['token'] is None

    def test_list_with_sensitive_data(self):
        result = sanitize_secrets(None, None, {'api_keys': ['sk-key1', 'sk-key2']})

        assert all('REDACTED' in key for key in result['api_keys'])

    def test_no_false_positive_on_passthrough(self):
        event_dict = {'passthrough_events': ['response.created', 'response.done']}
        result = sanitize_secrets(None, None, event_dict)

        assert result['passthrough_events'] == ['response.created', 'response.done']

    def test_suffix_match_redacted(self):
        result = sanitize_secrets(None, None, {'openai_api_key': 'sk-suffix-key', 'user_password': 'hunter22'})

        assert 'REDACTED' in result['openai_api_key']
        assert 'REDACTED' in result['user_password']


class TestContextProcessors:

    def test_session_id_added(self):
        token = session_id_var.set(None)
        try:
            session_id = set_session_id()
            result = add_session_id(None, None, {'event': 'x'})
            assert result['session_id'] == session_id
        finally:
            session_id_var.reset(token)

    def test_session_id_absent_when_unset(self):
        token = session_id_var.set(None)
        try:
            assert 'session_id' not in add_session_id(None, None, {'event': 'x'})
        finally:
            session_id_var.reset(token)

    def test_explicit_session_id(self):
        token = session_id_var.set(None)
        try:
            assert set_session_id("interview-42") == "interview-42"
        finally:
            session_id_var.reset(token)

    def test_service_context(self):
        result = add_service_context(None, None, {'event': 'x', 'logger': 'interviewer.engine'})

        assert result['service'] == SERVICE_NAME
        assert result['component'] == 'interviewer.engine'
