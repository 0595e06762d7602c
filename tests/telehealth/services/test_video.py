from datetime import datetime, timedelta, timezone

import jwt
import pytest

from telehealth.services.video import VideoSessionError, VideoSessionProvider


def test_create_session_returns_configured_session() -> None:
    provider = VideoSessionProvider(api_key='key', api_secret='secret', session_id='session-1', application_id='app-1')

    session = provider.create_session()

    assert session.session_id == 'session-1'
    assert session.application_id == 'app-1'


def test_create_session_requires_configuration() -> None:
    provider = VideoSessionProvider(api_key='key', api_secret='secret', session_id='', application_id='app-1')

    with pytest.raises(VideoSessionError):
        provider.create_session()


def test_generate_token_signs_session_claims() -> None:
    provider = VideoSessionProvider(api_key='key', api_secret='secret', session_id='session-1', application_id='app-1')
    expire_time = datetime.now(timezone.utc) + timedelta(hours=1)

    token = provider.generate_token('session-1', '{"name": "Pat"}', expire_time)

    claims = provider.decode_token(token)
    assert claims['session_id'] == 'session-1'
    assert claims['iss'] == 'key'
    assert claims['role'] == 'publisher'
    assert claims['data'] == '{"name": "Pat"}'
    assert claims['exp'] == int(expire_time.timestamp())


def test_generate_token_requires_secret() -> None:
    provider = VideoSessionProvider(api_key='key', api_secret='', session_id='session-1', application_id='app-1')

    with pytest.raises(VideoSessionError):
        provider.generate_token('session-1', '{}', datetime.now(timezone.utc))


def test_generate_token_is_rejected_with_other_secret() -> None:
    provider = VideoSessionProvider(api_key='key', api_secret='secret', session_id='session-1', application_id='app-1')
    token = provider.generate_token('session-1', '{}', datetime.now(timezone.utc) + timedelta(hours=1))

    with pytest.raises(jwt.InvalidSignatureError):
        jwt.decode(token, 'not-the-secret', algorithms=['HS256'])
