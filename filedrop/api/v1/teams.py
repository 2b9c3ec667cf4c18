"""
API эндпоинты команд
"""

from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from filedrop.auth.dependencies import get_current_active_user
from filedrop.core.database import get_db
from filedrop.models.user import User
from filedrop.schemas.team import (
    TeamCreate,
    TeamFileResponse,
    TeamFileShareRequest,
    TeamFileShareResponse,
    TeamMemberAdd,
    TeamMemberResponse,
    TeamResponse,
)
from filedrop.services.team_service import TeamService

router = APIRouter()


@router.post("/", response_model=TeamResponse, status_code=status.HTTP_201_CREATED)
async def create_team(
    data: TeamCreate,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
) -> TeamResponse:
    team = await TeamService(db).create_team(data.name, current_user.id)
    return TeamResponse.model_validate(team)


@router.get("/", response_model=list[TeamResponse])
async def list_teams(
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
) -> list[TeamResponse]:
    """Команды, в которых состоит пользователь"""
    teams = await TeamService(db).get_user_teams(current_user.id)
    return [TeamResponse.model_validate(t) for t in teams]


@router.get("/{team_id}/members", response_model=list[TeamMemberResponse])
async def list_members(
    team_id: UUID,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
) -> list[TeamMemberResponse]:
    members = await TeamService(db).get_members(team_id, current_user.id)
    return [TeamMemberResponse.model_validate(m) for m in members]


@router.post(
    "/{team_id}/members",
    response_model=TeamMemberResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_member(
    team_id: UUID,
    data: TeamMemberAdd,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
) -> TeamMemberResponse:
    """Добавить участника (только администратор команды)"""
    member = await TeamService(db).add_member(
        team_id, current_user.id, data.email, data.role
    )
    return TeamMemberResponse.model_validate(member)


@router.get("/{team_id}/files", response_model=list[TeamFileResponse])
async def list_team_files(
    team_id: UUID,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
) -> list[TeamFileResponse]:
    shares = await TeamService(db).get_team_files(team_id, current_user.id)
    return [TeamFileResponse.model_validate(s) for s in shares]


@router.post(
    "/{team_id}/files",
    response_model=TeamFileShareResponse,
    status_code=status.HTTP_201_CREATED,
)
async def share_file(
    team_id: UUID,
    data: TeamFileShareRequest,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
) -> TeamFileShareResponse:
    """Поделиться своим файлом с командой"""
    share = await TeamService(db).share_file(team_id, data.file_id, current_user.id)
    return TeamFileShareResponse.model_validate(share)


@router.delete("/{team_id}/files/{share_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_team_file(
    team_id: UUID,
    share_id: UUID,
    current_user: User = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db),
) -> None:
    """Убрать файл из команды; сам файл остаётся у владельца"""
    await TeamService(db).remove_share(team_id, share_id, current_user.id)
