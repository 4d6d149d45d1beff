"""VideoSDK service - room creation and participant tokens"""

import logging
from datetime import datetime, timedelta
from typing import Optional

import httpx
from jose import jwt as jose_jwt

from ... import config

logger = logging.getLogger(__name__)

TOKEN_TTL = timedelta(hours=1)
PARTICIPANT_PERMISSIONS = ["allow_join"]
HOST_PERMISSIONS = ["allow_join", "allow_mod"]


class VideoSDKError(Exception):
    """Raised when VideoSDK cannot create a room"""

    def __init__(self, message: str, status_code: Optional[int] = None, not_configured: bool = False):
        super().__init__(message)
        self.status_code = status_code
        self.not_configured = not_configured


class VideoSDKService:
    """Service for VideoSDK API operations"""

    def __init__(
        self,
        api_key: Optional[str] = None,
        secret_key: Optional[str] = None,
        api_base: Optional[str] = None,
    ):
        self.api_key = api_key if api_key is not None else config.VIDEOSDK_API_KEY
        self.secret_key = secret_key if secret_key is not None else config.VIDEOSDK_SECRET_KEY
        self.api_base = (api_base or config.VIDEOSDK_API_BASE).rstrip("/")

    def is_available(self) -> bool:
        return bool(self.api_key and self.secret_key)

    def generate_token(
        self,
        permissions: Optional[list[str]] = None,
        room_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> str:
        """HS256 token signed with the VideoSDK secret, valid for one hour"""
        if not self.is_available():
            raise VideoSDKError("VideoSDK is not configured", not_configured=True)

        issued_at = now or datetime.utcnow()
        payload = {
            "apikey": self.api_key,
            "permissions": permissions or PARTICIPANT_PERMISSIONS,
            "version": 2,
            "iat": issued_at,
            "exp": issued_at + TOKEN_TTL,
        }
        if room_id:
            payload["roomId"] = room_id
        return jose_jwt.encode(payload, self.secret_key, algorithm="HS256")

    async def create_room(self) -> str:
        """Create a meeting room and return its id"""
        token = self.generate_token(HOST_PERMISSIONS)

        try:
            async with httpx.AsyncClient(timeout=30.0) as client:
                response = await client.post(
                    f"{self.api_base}/v2/rooms",
                    headers={"Authorization": token, "Content-Type": "application/json"},
                )
        except httpx.HTTPError as e:
            logger.error(f"❌ VideoSDK request failed: {e}")
            raise VideoSDKError(f"Could not reach VideoSDK: {e}") from e

        if response.status_code >= 400:
            logger.error(f"❌ VideoSDK error {response.status_code}: {response.text}")
            raise VideoSDKError("Failed to create meeting room", response.status_code)

        room_id = response.json().get("roomId")
        if not room_id:
            raise VideoSDKError("VideoSDK response missing roomId")

        logger.info(f"🎥 VideoSDK room created: {room_id}")
        return room_id

    @staticmethod
    def meeting_url(room_id: str) -> str:
        return f"{config.VIDEOSDK_MEETING_URL}/{room_id}"
