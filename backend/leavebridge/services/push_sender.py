"""Push gateways - FCM via firebase-admin, APNs via aioapns."""
import asyncio
import logging
from typing import Dict

import firebase_admin
from aioapns import APNs, NotificationRequest, PushType
from aioapns import exceptions as apns_exceptions
from firebase_admin import credentials, exceptions as firebase_exceptions, messaging

from ..config import Settings
from ..errors import ConfigurationError, PermanentInvalidToken, TransientDeliveryError

logger = logging.getLogger(__name__)

# APNs reasons meaning the install is gone
APNS_INVALID_TOKEN_REASONS = frozenset({"BadDeviceToken", "Unregistered", "DeviceTokenNotForTopic"})

# FCM legacy codes for the same situation
FCM_INVALID_TOKEN_CODES = frozenset({
    "messaging/invalid-registration-token",
    "messaging/registration-token-not-registered",
})


class PushGateway:
    """Delivers one message to one token.

    Implementations raise PermanentInvalidToken when the token must be
    discarded and TransientDeliveryError for anything else.
    """

    async def send(self, token: str, title: str, body: str, payload: Dict[str, str]) -> None:
        raise NotImplementedError

    async def close(self) -> None:
        pass


class FcmGateway(PushGateway):
    """Firebase Cloud Messaging gateway."""

    def __init__(self, app: firebase_admin.App):
        self._app = app

    @classmethod
    def from_settings(cls, config: Settings) -> "FcmGateway":
        if config.firebase_credentials_file:
            cred = credentials.Certificate(config.firebase_credentials_file)
        elif config.firebase_service_account:
            cred = credentials.Certificate(config.firebase_service_account)
        else:
            raise ConfigurationError("Firebase credentials are not configured")

        try:
            app = firebase_admin.get_app()
        except ValueError:
            app = firebase_admin.initialize_app(cred)
        logger.info("FCM gateway configured")
        return cls(app)

    def _build_message(self, token: str, title: str, body: str, payload: Dict[str, str]) -> messaging.Message:
        return messaging.Message(
            token=token,
            notification=messaging.Notification(title=title, body=body),
            data=dict(payload),
            android=messaging.AndroidConfig(priority="high"),
            apns=messaging.APNSConfig(payload=messaging.APNSPayload(aps=messaging.Aps(sound="default"))),
        )

    async def send(self, token: str, title: str, body: str, payload: Dict[str, str]) -> None:
        message = self._build_message(token, title, body, payload)
        try:
            # messaging.send is blocking
            await asyncio.to_thread(messaging.send, message, app=self._app)
        except (messaging.UnregisteredError, messaging.SenderIdMismatchError) as e:
            raise PermanentInvalidToken(str(e), code=e.code) from e
        except firebase_exceptions.InvalidArgumentError as e:
            if "registration token" in str(e).lower():
                raise PermanentInvalidToken(str(e), code=e.code) from e
            raise TransientDeliveryError(str(e), code=e.code) from e
        except firebase_exceptions.FirebaseError as e:
            if e.code in FCM_INVALID_TOKEN_CODES:
                raise PermanentInvalidToken(str(e), code=e.code) from e
            raise TransientDeliveryError(str(e), code=e.code) from e


class ApnsGateway(PushGateway):
    """Apple Push Notification service gateway."""

    def __init__(self, client: APNs):
        self._client = client

    @classmethod
    def from_settings(cls, config: Settings) -> "ApnsGateway":
        client = APNs(
            key=config.apns_key_path,
            key_id=config.apns_key_id,
            team_id=config.apns_team_id,
            topic=config.apns_bundle_id,
            use_sandbox=config.apns_use_sandbox,
        )
        logger.info(f"APNs gateway configured (sandbox={config.apns_use_sandbox})")
        return cls(client)

    async def send(self, token: str, title: str, body: str, payload: Dict[str, str]) -> None:
        message = {"aps": {"alert": {"title": title, "body": body}, "sound": "default"}}
        message.update(payload)

        request = NotificationRequest(
            device_token=token,
            message=message,
            push_type=PushType.ALERT,
        )

        try:
            response = await self._client.send_notification(request)
        except (
            apns_exceptions.ConnectionError,
            apns_exceptions.ConnectionClosed,
            apns_exceptions.MaxAttemptsExceeded,
            ConnectionError,
            OSError,
        ) as e:
            raise TransientDeliveryError(f"APNs connection failed: {e}") from e

        if response.is_successful:
            return
        reason = response.description or ""
        if reason in APNS_INVALID_TOKEN_REASONS:
            raise PermanentInvalidToken(f"APNs rejected token: {reason}", code=reason)
        raise TransientDeliveryError(f"APNs delivery failed: {reason}", code=reason)


def build_gateway(config: Settings) -> PushGateway:
    """Create the gateway selected by PUSH_PROVIDER."""
    if config.push_provider == "fcm":
        return FcmGateway.from_settings(config)
    if config.push_provider == "apns":
        return ApnsGateway.from_settings(config)
    raise ConfigurationError(f"Unknown PUSH_PROVIDER: {config.push_provider}")
