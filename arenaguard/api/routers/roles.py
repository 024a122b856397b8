"""
ArenaGuard - Roles Router
=========================

Role CRUD, permission sets and member assignment within a community.
"""

from typing import List

from fastapi import APIRouter, Depends

from arenaguard.api.dependencies import get_current_user_id, get_registry
from arenaguard.api.models.base import APIResponse
from arenaguard.api.models.communities import (
    CreateRoleRequest,
    RoleResponse,
    SetPermissionsRequest,
    UpdateRoleRequest,
)
from arenaguard.services import RoleRegistry


router = APIRouter(prefix="/communities/{community_id}/roles", tags=["Roles"])


@router.get("", response_model=APIResponse[List[RoleResponse]])
async def list_roles(
    community_id: str,
    user_id: str = Depends(get_current_user_id),
    registry: RoleRegistry = Depends(get_registry),
) -> APIResponse[List[RoleResponse]]:
    """Roles in ascending position (@everyone first)."""
    roles = await registry.list_roles(community_id)
    return APIResponse(data=[RoleResponse.from_model(r) for r in roles])


@router.post("", response_model=APIResponse[RoleResponse], status_code=201)
async def create_role(
    community_id: str,
    body: CreateRoleRequest,
    user_id: str = Depends(get_current_user_id),
    registry: RoleRegistry = Depends(get_registry),
) -> APIResponse[RoleResponse]:
    role = await registry.create_role(
        community_id, user_id, body.name, body.color, body.permissions, body.mentionable,
    )
    return APIResponse(message="Role created", data=RoleResponse.from_model(role))


@router.patch("/{role_id}", response_model=APIResponse[RoleResponse])
async def update_role(
    community_id: str,
    role_id: str,
    body: UpdateRoleRequest,
    user_id: str = Depends(get_current_user_id),
    registry: RoleRegistry = Depends(get_registry),
) -> APIResponse[RoleResponse]:
    await registry.get_community_role(community_id, role_id)
    role = await registry.update_role(
        role_id, user_id, name=body.name, color=body.color, mentionable=body.mentionable,
    )
    return APIResponse(data=RoleResponse.from_model(role))


@router.put("/{role_id}/permissions", response_model=APIResponse[RoleResponse])
async def set_role_permissions(
    community_id: str,
    role_id: str,
    body: SetPermissionsRequest,
    user_id: str = Depends(get_current_user_id),
    registry: RoleRegistry = Depends(get_registry),
) -> APIResponse[RoleResponse]:
    """Replace the role's permission set."""
    await registry.get_community_role(community_id, role_id)
    role = await registry.set_role_permissions(role_id, body.permissions, user_id)
    return APIResponse(data=RoleResponse.from_model(role))


@router.delete("/{role_id}", response_model=APIResponse[dict])
async def delete_role(
    community_id: str,
    role_id: str,
    user_id: str = Depends(get_current_user_id),
    registry: RoleRegistry = Depends(get_registry),
) -> APIResponse[dict]:
    await registry.get_community_role(community_id, role_id)
    await registry.delete_role(role_id, user_id)
    return APIResponse(message="Role deleted", data={"id": role_id})


@router.put("/{role_id}/members/{member_id}", response_model=APIResponse[RoleResponse])
async def assign_role(
    community_id: str,
    role_id: str,
    member_id: str,
    user_id: str = Depends(get_current_user_id),
    registry: RoleRegistry = Depends(get_registry),
) -> APIResponse[RoleResponse]:
    await registry.get_community_role(community_id, role_id)
    role = await registry.assign_role(role_id, member_id, user_id)
    return APIResponse(data=RoleResponse.from_model(role))


@router.delete("/{role_id}/members/{member_id}", response_model=APIResponse[RoleResponse])
async def unassign_role(
    community_id: str,
    role_id: str,
    member_id: str,
    user_id: str = Depends(get_current_user_id),
    registry: RoleRegistry = Depends(get_registry),
) -> APIResponse[RoleResponse]:
    await registry.get_community_role(community_id, role_id)
    role = await registry.unassign_role(role_id, member_id, user_id)
    return APIResponse(data=RoleResponse.from_model(role))


__all__ = ["router"]
