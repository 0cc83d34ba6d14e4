"""Monitored record categories and the notifications they produce."""
import enum
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Set, Tuple


class Routing(str, enum.Enum):
    """How recipients are derived for a category."""
    SUBJECT = "subject"      # the employee the record is about
    APPROVER = "approver"    # officers or the employee's manager, by leave type policy
    OFFICERS = "officers"    # the configured time-off officers


@dataclass
class ResolvedNotification:
    """One message for one change record, ready for dispatch."""
    recipients: Set[str]
    title: str
    body: str
    payload: Dict[str, str] = field(default_factory=dict)


def field_text(value) -> str:
    """Render an Odoo field value as text.

    Odoo encodes empty fields as False and many2one fields as [id, name].
    """
    if value is None or value is False:
        return ""
    if isinstance(value, (list, tuple)):
        return field_text(value[1]) if len(value) > 1 else ""
    if isinstance(value, float):
        return f"{value:g}"
    return str(value)


def many2one_id(value) -> Optional[int]:
    """Extract the id of a many2one value, or None when unset."""
    if isinstance(value, (list, tuple)) and value:
        return value[0]
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return None


def _id_text(value) -> str:
    record_id = many2one_id(value)
    return "" if record_id is None else str(record_id)


def _leave_payload(record: dict, event_type: str) -> Dict[str, str]:
    return {
        "type": event_type,
        "leaveId": _id_text(record.get("id")),
        "employeeId": _id_text(record.get("employee_id")),
        "employeeName": field_text(record.get("employee_id")),
        "leaveType": field_text(record.get("holiday_status_id")),
        "dateFrom": field_text(record.get("date_from")),
        "dateTo": field_text(record.get("date_to")),
        "numberOfDays": field_text(record.get("number_of_days")),
        "state": field_text(record.get("state")),
        "description": field_text(record.get("name")),
    }


def _period(record: dict) -> str:
    return f"{field_text(record.get('date_from'))} to {field_text(record.get('date_to'))}"


def _render_decision(record: dict) -> Tuple[str, str, Dict[str, str]]:
    approved = record.get("state") == "validate"
    verdict = "approved" if approved else "refused"
    title = "Leave approved" if approved else "Leave refused"
    body = f"Your {field_text(record.get('holiday_status_id'))} request ({_period(record)}) was {verdict}"
    return title, body, _leave_payload(record, f"leave_{verdict}")


def _render_pending(record: dict) -> Tuple[str, str, Dict[str, str]]:
    title = "Leave request to approve"
    body = (
        f"{field_text(record.get('employee_id'))} requested "
        f"{field_text(record.get('holiday_status_id'))} ({_period(record)}, "
        f"{field_text(record.get('number_of_days'))} days)"
    )
    return title, body, _leave_payload(record, "leave_pending")


def _render_second_approval(record: dict) -> Tuple[str, str, Dict[str, str]]:
    title = "Leave awaiting second approval"
    body = (
        f"{field_text(record.get('employee_id'))}: "
        f"{field_text(record.get('holiday_status_id'))} ({_period(record)}) "
        f"was approved by the manager and needs final validation"
    )
    return title, body, _leave_payload(record, "leave_second_approval")


def _render_allocation(record: dict) -> Tuple[str, str, Dict[str, str]]:
    title = "Allocation request to approve"
    body = (
        f"{field_text(record.get('employee_id'))} requested "
        f"{field_text(record.get('number_of_days'))} days of "
        f"{field_text(record.get('holiday_status_id'))}"
    )
    payload = {
        "type": "allocation_pending",
        "allocationId": _id_text(record.get("id")),
        "employeeId": _id_text(record.get("employee_id")),
        "employeeName": field_text(record.get("employee_id")),
        "leaveType": field_text(record.get("holiday_status_id")),
        "numberOfDays": field_text(record.get("number_of_days")),
        "state": field_text(record.get("state")),
        "notes": field_text(record.get("notes")),
    }
    return title, body, payload


_LEAVE_FIELDS = [
    "id", "name", "state", "employee_id", "holiday_status_id",
    "date_from", "date_to", "number_of_days", "write_date",
]


@dataclass(frozen=True)
class Category:
    """A class of change the poller watches for."""
    key: str
    collection: str
    domain: List
    fields: List[str]
    routing: Routing
    renderer: Callable[[dict], Tuple[str, str, Dict[str, str]]]

    def render(self, record: dict) -> ResolvedNotification:
        """Title, body, and payload for a record. Recipients are filled later."""
        title, body, payload = self.renderer(record)
        return ResolvedNotification(recipients=set(), title=title, body=body, payload=payload)


LEAVE_DECISION = Category(
    key="leave_decision",
    collection="hr.leave",
    domain=[["state", "in", ["validate", "refuse"]]],
    fields=_LEAVE_FIELDS,
    routing=Routing.SUBJECT,
    renderer=_render_decision,
)

LEAVE_PENDING_APPROVAL = Category(
    key="leave_pending_approval",
    collection="hr.leave",
    domain=[["state", "=", "confirm"]],
    fields=_LEAVE_FIELDS,
    routing=Routing.APPROVER,
    renderer=_render_pending,
)

SECOND_APPROVAL = Category(
    key="second_approval",
    collection="hr.leave",
    domain=[["state", "=", "validate1"]],
    fields=_LEAVE_FIELDS,
    routing=Routing.OFFICERS,
    renderer=_render_second_approval,
)

ALLOCATION_PENDING = Category(
    key="allocation_pending",
    collection="hr.leave.allocation",
    domain=[["state", "=", "confirm"]],
    fields=["id", "name", "state", "employee_id", "holiday_status_id", "number_of_days", "notes", "write_date"],
    routing=Routing.OFFICERS,
    renderer=_render_allocation,
)

CATEGORIES = (LEAVE_DECISION, LEAVE_PENDING_APPROVAL, SECOND_APPROVAL, ALLOCATION_PENDING)
