"""
Cookie-based anti-forgery state for the OAuth install flow.
"""

from typing import Optional

from fastapi import Request, Response
from itsdangerous import URLSafeTimedSerializer, BadSignature, SignatureExpired


# State cookie lifetime: 10 minutes
STATE_MAX_AGE = 10 * 60  # seconds
STATE_COOKIE_NAME = "shopify_oauth_state"
STATE_COOKIE_PATH = "/auth"


class StateCookieManager:
    """Issues and reads the signed, short-lived state cookie."""

    def __init__(
        self,
        secret_key: str,
        max_age: int = STATE_MAX_AGE,
        secure: bool = True,
        samesite: str = "none",
    ):
        """
        Initialize state cookie manager.

        Args:
            secret_key: Secret key for signing cookies
            max_age: Cookie lifetime in seconds
            secure: Only send the cookie over HTTPS
            samesite: "none" when embedded in Shopify admin, else "strict"
        """
        self._serializer = URLSafeTimedSerializer(secret_key, salt="oauth-state")
        self.max_age = max_age
        self.secure = secure
        self.samesite = samesite

    def issue(self, response: Response, state: str, shop: str) -> None:
        """
        Attach the anti-forgery token to the response.

        Args:
            response: FastAPI response object
            state: Anti-forgery token issued for this attempt
            shop: Shop the attempt was started for
        """
        token = self._serializer.dumps({"state": state, "shop": shop})

        response.set_cookie(
            key=STATE_COOKIE_NAME,
            value=token,
            max_age=self.max_age,
            path=STATE_COOKIE_PATH,
            httponly=True,  # Not accessible via JavaScript
            secure=self.secure,
            samesite=self.samesite,
        )

    def read(self, request: Request) -> Optional[dict]:
        """
        Get the state payload from the request cookie.

        Returns:
            Payload dict or None if missing/invalid/expired
        """
        token = request.cookies.get(STATE_COOKIE_NAME)
        if not token:
            return None

        try:
            payload = self._serializer.loads(token, max_age=self.max_age)
        except (BadSignature, SignatureExpired):
            return None

        if not isinstance(payload, dict) or not isinstance(payload.get("state"), str):
            return None
        return payload

    def read_state(self, request: Request) -> Optional[str]:
        """The anti-forgery token presented by the client, if any."""
        payload = self.read(request)
        return payload["state"] if payload else None

    def clear(self, response: Response) -> None:
        """Delete the state cookie."""
        response.delete_cookie(
            key=STATE_COOKIE_NAME,
            path=STATE_COOKIE_PATH,
            httponly=True,
            secure=self.secure,
            samesite=self.samesite,
        )
