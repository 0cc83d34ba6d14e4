"""Notification dispatcher - one delivery attempt per (token, message)."""
import asyncio
import enum
import logging
from typing import Dict

from ..errors import PermanentInvalidToken, TransientDeliveryError
from .device_registry import DeviceRegistry
from .push_sender import PushGateway

logger = logging.getLogger(__name__)


class DeliveryOutcome(str, enum.Enum):
    DELIVERED = "delivered"
    SKIPPED = "skipped"


class NotificationDispatcher:
    """Sends messages and prunes tokens the gateway declares dead."""

    def __init__(self, gateway: PushGateway, registry: DeviceRegistry, timeout: float = 10.0):
        self.gateway = gateway
        self.registry = registry
        self.timeout = timeout

    async def dispatch(self, token: str, title: str, body: str, payload: Dict[str, str]) -> DeliveryOutcome:
        """Send one message to one token.

        Invalid tokens are removed from the registry. Any other failure,
        including a timeout, is logged and the registry is left alone.
        """
        try:
            await asyncio.wait_for(
                self.gateway.send(token, title, body, payload),
                timeout=self.timeout,
            )
        except PermanentInvalidToken as e:
            logger.warning(f"Invalid token {token[:16]}... ({e.code or e}), removing")
            try:
                await self.registry.remove(token)
            except Exception as remove_error:
                logger.error(f"Failed to remove invalid token {token[:16]}...: {remove_error}")
            return DeliveryOutcome.SKIPPED
        except TransientDeliveryError as e:
            logger.warning(f"Push delivery failed for {token[:16]}...: {e}")
            return DeliveryOutcome.SKIPPED
        except asyncio.TimeoutError:
            logger.warning(f"Push delivery to {token[:16]}... timed out after {self.timeout}s")
            return DeliveryOutcome.SKIPPED
        except Exception as e:
            logger.exception(f"Unexpected error sending push to {token[:16]}...: {e}")
            return DeliveryOutcome.SKIPPED

        logger.info(f"Push notification sent to {token[:16]}...: {title}")
        return DeliveryOutcome.DELIVERED
