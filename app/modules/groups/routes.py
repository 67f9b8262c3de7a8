from fastapi import APIRouter, Depends, Query
from fastapi.responses import PlainTextResponse
from sqlalchemy.engine import Engine
from typing import Dict, Optional

from app.core.dependencies import get_current_user_id
from app.database.sql import get_db
from app.modules.groups.schemas import AllGroupResponse, GroupCreate, GroupResponse, GroupUpdate
from app.modules.groups.service import GroupService
from app.modules.users.schemas import AllUserResponse

router = APIRouter(prefix="/group", tags=["group"])


def get_group_service(db: Engine = Depends(get_db)) -> GroupService:
    return GroupService(db)


@router.get("/all", response_model=AllGroupResponse)
def list_groups(
    id: Optional[int] = Query(None),
    user_id: Optional[int] = Query(None, description="Only groups this user belongs to"),
    owner_id: Optional[int] = Query(None),
    area_id: Optional[int] = Query(None),
    current_user: Dict = Depends(get_current_user_id),
    service: GroupService = Depends(get_group_service)
):
    """List groups matching the filters, with owner summary and member count"""
    return service.list_groups(group_id=id, member_user_id=user_id, owner_id=owner_id, area_id=area_id)


@router.post("/create", response_model=GroupResponse)
def create_group(
    group_data: GroupCreate,
    current_user: Dict = Depends(get_current_user_id),
    service: GroupService = Depends(get_group_service)
):
    """Create a group; the caller becomes its owner"""
    return service.create_group(group_data, current_user["id"])


@router.get("/invitation/{group_id}", response_class=PlainTextResponse)
def get_group_invitation(
    group_id: int,
    current_user: Dict = Depends(get_current_user_id),
    service: GroupService = Depends(get_group_service)
):
    """Invitation code (members and admins only)"""
    return service.get_invitation(group_id, current_user)


@router.delete("/delete/{group_id}", response_class=PlainTextResponse)
def delete_group(
    group_id: int,
    current_user: Dict = Depends(get_current_user_id),
    service: GroupService = Depends(get_group_service)
):
    """Delete group (owner or admin)"""
    service.delete_group(group_id, current_user)
    return "Deleted successfully"


@router.get("/all_user/{group_id}", response_model=AllUserResponse)
def list_group_users(
    group_id: int,
    current_user: Dict = Depends(get_current_user_id),
    service: GroupService = Depends(get_group_service)
):
    return service.list_members(group_id, current_user)


@router.post("/add/{group_id}", response_class=PlainTextResponse)
def add_user_to_group(
    group_id: int,
    user_id: int = Query(...),
    invitation: Optional[str] = Query(None),
    current_user: Dict = Depends(get_current_user_id),
    service: GroupService = Depends(get_group_service)
):
    """Add a user to the group with its invitation code (admins may omit it)"""
    service.add_member(group_id, user_id, invitation, current_user)
    return "Added successfully"


@router.delete("/remove/{group_id}", response_class=PlainTextResponse)
def remove_user_from_group(
    group_id: int,
    user_id: int = Query(...),
    current_user: Dict = Depends(get_current_user_id),
    service: GroupService = Depends(get_group_service)
):
    """Remove a member (group owner, group admin or admin)"""
    service.remove_member(group_id, user_id, current_user)
    return "Removed successfully"


@router.put("/admin/{group_id}", response_class=PlainTextResponse)
def set_group_admin(
    group_id: int,
    user_id: int = Query(...),
    is_admin: bool = Query(True),
    current_user: Dict = Depends(get_current_user_id),
    service: GroupService = Depends(get_group_service)
):
    """Grant or revoke a member's group admin flag (owner or admin)"""
    service.set_member_admin(group_id, user_id, is_admin, current_user)
    return "Updated successfully"


@router.delete("/quit/{group_id}", response_class=PlainTextResponse)
def quit_group(
    group_id: int,
    current_user: Dict = Depends(get_current_user_id),
    service: GroupService = Depends(get_group_service)
):
    service.quit_group(group_id, current_user["id"])
    return "Quit successfully"


@router.put("/update/{group_id}", response_class=PlainTextResponse)
def update_group(
    group_id: int,
    group_data: GroupUpdate,
    current_user: Dict = Depends(get_current_user_id),
    service: GroupService = Depends(get_group_service)
):
    """Edit group info; omitted fields keep their current value"""
    service.update_group(group_id, group_data, current_user)
    return "Updated successfully"
