"""Video session collaborator.

Appointments share the session configured for the deployment; participants
get short-lived JWTs signed with the video API secret.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

import jwt

from telehealth.core import config

logger = logging.getLogger(__name__)


class VideoSessionError(Exception):
    pass


@dataclass(frozen=True)
class VideoSession:
    session_id: str
    application_id: str


class VideoSessionProvider:
    def __init__(
        self,
        api_key: str | None = None,
        api_secret: str | None = None,
        session_id: str | None = None,
        application_id: str | None = None,
    ):
        self.api_key = config.VIDEO_API_KEY if api_key is None else api_key
        self.api_secret = config.VIDEO_API_SECRET if api_secret is None else api_secret
        self.session_id = config.VIDEO_SESSION_ID if session_id is None else session_id
        self.application_id = config.VIDEO_APPLICATION_ID if application_id is None else application_id

    def create_session(self) -> VideoSession:
        if not self.session_id or not self.application_id:
            raise VideoSessionError('Missing VIDEO_SESSION_ID or VIDEO_APPLICATION_ID in environment variables')

        logger.info('Using configured video session for application %s', self.application_id)
        return VideoSession(session_id=self.session_id, application_id=self.application_id)

    def generate_token(self, session_id: str, data: str, expire_time: datetime) -> str:
        if not self.api_secret:
            raise VideoSessionError('Missing VIDEO_API_SECRET in environment variables')

        if expire_time.tzinfo is None:
            expire_time = expire_time.astimezone()

        payload = {
            'iss': self.api_key,
            'session_id': session_id,
            'role': 'publisher',
            'data': data,
            'iat': datetime.now(timezone.utc),
            'exp': expire_time.astimezone(timezone.utc),
        }
        return jwt.encode(payload, self.api_secret, algorithm=config.VIDEO_TOKEN_ALGORITHM)

    def decode_token(self, token: str) -> dict:
        return jwt.decode(token, self.api_secret, algorithms=[config.VIDEO_TOKEN_ALGORITHM])


def get_video_provider() -> VideoSessionProvider:
    return VideoSessionProvider()
