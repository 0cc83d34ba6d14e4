"""Recipient resolution - which devices must hear about a change record."""
import logging
from typing import Iterable, List, Optional, Set

from ..errors import RecipientResolutionGap
from ..models.device_registration import PRIVILEGED_ROLES
from .categories import Category, Routing, many2one_id
from .classification import ValidationPolicy, classify_validation_policy
from .device_registry import DeviceRegistry
from .odoo_client import OdooClient

logger = logging.getLogger(__name__)


class RecipientResolver:
    """Applies each category's routing rule to a change record.

    Store lookups are sequential awaited steps; a RecordStoreError from any
    step propagates to the caller. When no recipient can be derived the
    resolver raises RecipientResolutionGap.
    """

    def __init__(self, store: OdooClient, registry: DeviceRegistry, officer_ids: Iterable[int]):
        self.store = store
        self.registry = registry
        self.officer_ids = list(officer_ids)

    async def resolve(self, category: Category, record: dict) -> Set[str]:
        if category.routing is Routing.SUBJECT:
            return await self._resolve_subject(record)
        if category.routing is Routing.APPROVER:
            return await self._resolve_approver(record)
        return await self._resolve_officers(record)

    async def _employee_user_id(self, employee_id: int) -> Optional[int]:
        rows = await self.store.read("hr.employee", [employee_id], ["user_id"])
        if not rows:
            return None
        return many2one_id(rows[0].get("user_id"))

    async def _tokens_for_employee(self, employee_id: int) -> List[str]:
        """Tokens under the employee's linked user, else under the raw employee id."""
        user_id = await self._employee_user_id(employee_id)
        if user_id is not None:
            tokens = await self.registry.tokens_for(user_id)
            if tokens:
                return tokens
        # Some clients register under the employee id directly
        return await self.registry.tokens_for(employee_id)

    async def _resolve_subject(self, record: dict) -> Set[str]:
        employee_id = many2one_id(record.get("employee_id"))
        if employee_id is None:
            raise RecipientResolutionGap(f"Record {record.get('id')} has no employee")

        tokens = await self._tokens_for_employee(employee_id)
        if not tokens:
            raise RecipientResolutionGap(f"No device registered for employee {employee_id}")
        return set(tokens)

    async def _resolve_officers(self, record: dict) -> Set[str]:
        tokens = await self.registry.tokens_for_many(self.officer_ids)
        if not tokens:
            raise RecipientResolutionGap(
                f"No officer device registered for record {record.get('id')}"
            )
        return set(tokens)

    async def _validation_policy(self, record: dict) -> ValidationPolicy:
        leave_type_id = many2one_id(record.get("holiday_status_id"))
        if leave_type_id is None:
            return ValidationPolicy.UNKNOWN

        rows = await self.store.read("hr.leave.type", [leave_type_id], ["leave_validation_type", "name"])
        if not rows:
            return ValidationPolicy.UNKNOWN
        row = rows[0]
        return classify_validation_policy(row.get("leave_validation_type") or None, row.get("name") or None)

    async def _resolve_approver(self, record: dict) -> Set[str]:
        employee_id = many2one_id(record.get("employee_id"))
        if employee_id is None:
            raise RecipientResolutionGap(f"Record {record.get('id')} has no employee")

        policy = await self._validation_policy(record)
        logger.debug(f"Leave {record.get('id')} validation policy: {policy.value}")

        if policy is ValidationPolicy.OFFICER_ONLY:
            return await self._resolve_officers(record)

        tokens = await self._manager_tokens(employee_id)
        if tokens:
            return set(tokens)

        tokens = await self.registry.tokens_with_roles(PRIVILEGED_ROLES)
        if tokens:
            logger.info(
                f"No manager device for employee {employee_id}, "
                f"broadcasting leave {record.get('id')} to {len(tokens)} privileged devices"
            )
            return set(tokens)

        raise RecipientResolutionGap(f"No approver device for leave {record.get('id')}")

    async def _manager_tokens(self, employee_id: int) -> List[str]:
        rows = await self.store.read("hr.employee", [employee_id], ["parent_id"])
        manager_id = many2one_id(rows[0].get("parent_id")) if rows else None
        if manager_id is None:
            return []
        return await self._tokens_for_employee(manager_id)
