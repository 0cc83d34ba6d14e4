"""Role lookup endpoint - classifies an Odoo user from their groups."""
import logging

from fastapi import APIRouter, Depends, HTTPException

from ..dependencies import get_store
from ..errors import RecordStoreError
from ..schemas.role import RoleLookupRequest, RoleLookupResponse
from ..services.classification import classify_user_role
from ..services.odoo_client import OdooClient

logger = logging.getLogger(__name__)

router = APIRouter(tags=["roles"])


@router.post("/user_role", response_model=RoleLookupResponse)
async def get_user_role(
    request: RoleLookupRequest,
    store: OdooClient = Depends(get_store),
):
    """Look up a user's groups in Odoo and derive manager/validator/employee."""
    try:
        user_id = int(request.user_id)
    except (TypeError, ValueError):
        raise HTTPException(status_code=400, detail="userId must be numeric")

    try:
        users = await store.read("res.users", [user_id], ["groups_id"])
        if not users:
            raise HTTPException(status_code=404, detail="User not found")

        group_ids = users[0].get("groups_id") or []
        groups = await store.read("res.groups", group_ids, ["name", "full_name"])
    except RecordStoreError as e:
        logger.error(f"Role lookup for user {user_id} failed: {e}")
        raise HTTPException(status_code=502, detail="Record store unavailable")

    names = [g.get("full_name") or g.get("name") or "" for g in groups]
    role = classify_user_role(names)
    logger.info(f"User {user_id} classified as {role.value}")

    return RoleLookupResponse(user_id=user_id, role=role.value, groups=[n for n in names if n])
