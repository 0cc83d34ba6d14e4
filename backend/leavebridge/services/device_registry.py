"""Device registry - maps push tokens to recipient identities."""
import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..models.device_registration import DeviceRegistration, DeviceRole
from ..utils.db_utils import retry_on_lock

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegisteredDevice:
    """Read-only snapshot of a registration row."""
    token: str
    recipient_id: Optional[str]
    role: DeviceRole
    registered_at: Optional[datetime]


def _snapshot(row: DeviceRegistration) -> RegisteredDevice:
    return RegisteredDevice(
        token=row.token,
        recipient_id=row.recipient_id,
        role=DeviceRole(row.role),
        registered_at=row.registered_at,
    )


class DeviceRegistry:
    """Stateful collaborator owning every DeviceRegistration row.

    Writes (registration endpoints and dispatcher pruning) are serialized
    through a single lock so concurrent upserts and removals cannot lose
    updates. Reads go straight to the database.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory
        self._write_lock = asyncio.Lock()

    async def upsert(
        self,
        token: str,
        recipient_id: Optional[str] = None,
        role: DeviceRole = DeviceRole.EMPLOYEE,
    ) -> bool:
        """Register a token, or update the owner of an existing one.

        Returns:
            True if a new registration was created
        """
        async with self._write_lock:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(DeviceRegistration).where(DeviceRegistration.token == token)
                )
                existing = result.scalar_one_or_none()

                if existing:
                    existing.recipient_id = recipient_id
                    existing.role = role.value
                    existing.updated_at = datetime.utcnow()
                else:
                    session.add(DeviceRegistration(
                        token=token,
                        recipient_id=recipient_id,
                        role=role.value,
                    ))

                await retry_on_lock(session.commit)

        if existing:
            logger.info(f"Device token updated for recipient {recipient_id}: {token[:16]}...")
        else:
            logger.info(f"New device registered for recipient {recipient_id}: {token[:16]}...")
        return existing is None

    async def remove(self, token: str) -> bool:
        """Remove a token. Unknown tokens are a no-op.

        Returns:
            True if a registration was deleted
        """
        async with self._write_lock:
            async with self._session_factory() as session:
                result = await session.execute(
                    delete(DeviceRegistration).where(DeviceRegistration.token == token)
                )
                await retry_on_lock(session.commit)

        removed = (result.rowcount or 0) > 0
        if removed:
            logger.info(f"Device token removed: {token[:16]}...")
        return removed

    async def tokens_for(self, recipient_id) -> List[str]:
        """Tokens registered under a recipient id (user id or employee id)."""
        if recipient_id is None or recipient_id is False:
            return []
        async with self._session_factory() as session:
            result = await session.execute(
                select(DeviceRegistration.token)
                .where(DeviceRegistration.recipient_id == str(recipient_id))
                .order_by(DeviceRegistration.id)
            )
            return list(result.scalars().all())

    async def tokens_for_many(self, recipient_ids: Iterable) -> List[str]:
        """Tokens registered under any of the given recipient ids."""
        keys = [str(r) for r in recipient_ids]
        if not keys:
            return []
        async with self._session_factory() as session:
            result = await session.execute(
                select(DeviceRegistration.token)
                .where(DeviceRegistration.recipient_id.in_(keys))
                .order_by(DeviceRegistration.id)
            )
            return list(result.scalars().all())

    async def tokens_with_roles(self, roles: Iterable[DeviceRole]) -> List[str]:
        """Tokens of every device registered under one of the roles."""
        values = [DeviceRole(r).value for r in roles]
        async with self._session_factory() as session:
            result = await session.execute(
                select(DeviceRegistration.token)
                .where(DeviceRegistration.role.in_(values))
                .order_by(DeviceRegistration.id)
            )
            return list(result.scalars().all())

    async def count(self) -> int:
        async with self._session_factory() as session:
            result = await session.execute(select(func.count(DeviceRegistration.id)))
            return result.scalar() or 0

    async def list_devices(self) -> List[RegisteredDevice]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(DeviceRegistration).order_by(DeviceRegistration.id)
            )
            return [_snapshot(row) for row in result.scalars().all()]
