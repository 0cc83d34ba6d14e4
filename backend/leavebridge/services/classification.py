"""Keyword classification for approval routing and role lookup.

Odoo exposes the validation policy of a leave type as a selection value
('hr', 'manager', 'both', 'no_validation') and, depending on the version and
language, as a free-text label ("By Time Off Officer", "By Employee's
Approver and Time Off Officer"). Routing matches both against fixed keyword
sets. Bump KEYWORDS_VERSION whenever a set changes.
"""
import enum
import re
from functools import lru_cache
from typing import Iterable, Optional

KEYWORDS_VERSION = 2

# Single "time-off officer" stage
OFFICER_KEYWORDS = ("hr", "officer", "time off officer", "responsable", "rh")

# Employee's direct manager stage
MANAGER_KEYWORDS = ("manager", "employee", "employee's approver", "approver", "responsable hiérarchique")

# Both stages, sequentially
DUAL_KEYWORDS = ("both", "dual", "double", "deux")

# Group names (res.groups) that classify a user
MANAGER_GROUP_KEYWORDS = ("manager", "administrator", "administrateur", "gestionnaire")
VALIDATOR_GROUP_KEYWORDS = ("officer", "approver", "validator", "valideur", "responsable")


class ValidationPolicy(str, enum.Enum):
    OFFICER_ONLY = "officer_only"
    MANAGER_STAGE = "manager_stage"
    DUAL_STAGE = "dual_stage"
    UNKNOWN = "unknown"


class UserRole(str, enum.Enum):
    MANAGER = "manager"
    VALIDATOR = "validator"
    EMPLOYEE = "employee"


@lru_cache(maxsize=None)
def _pattern(keyword: str) -> "re.Pattern[str]":
    return re.compile(r"(?<!\w)" + re.escape(keyword.lower()) + r"(?!\w)")


def matches_any(text: Optional[str], keywords: Iterable[str]) -> bool:
    """Case-insensitive whole-word match of any keyword in text."""
    if not text:
        return False
    lowered = str(text).lower()
    return any(_pattern(keyword).search(lowered) for keyword in keywords)


def classify_validation_policy(validation_type: Optional[str], display_name: Optional[str]) -> ValidationPolicy:
    """Map a leave type's validation text and name to a routing policy.

    Dual beats manager beats officer: a label such as "By Employee's Approver
    and Time Off Officer" needs the manager first, so it must not be routed
    to the officers alone.
    """
    texts = [t for t in (validation_type, display_name) if t]
    # Odoo's selection values use underscores ('no_validation')
    texts = [str(t).replace("_", " ") for t in texts]

    if any(matches_any(t, DUAL_KEYWORDS) for t in texts):
        return ValidationPolicy.DUAL_STAGE
    if any(matches_any(t, MANAGER_KEYWORDS) for t in texts):
        return ValidationPolicy.MANAGER_STAGE
    if any(matches_any(t, OFFICER_KEYWORDS) for t in texts):
        return ValidationPolicy.OFFICER_ONLY
    return ValidationPolicy.UNKNOWN


def classify_user_role(group_names: Iterable[str]) -> UserRole:
    """Derive a role from the names of the groups a user belongs to."""
    names = [n for n in group_names if n]
    if any(matches_any(n, MANAGER_GROUP_KEYWORDS) for n in names):
        return UserRole.MANAGER
    if any(matches_any(n, VALIDATOR_GROUP_KEYWORDS) for n in names):
        return UserRole.VALIDATOR
    return UserRole.EMPLOYEE
