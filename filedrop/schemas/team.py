"""
Pydantic схемы для команд
"""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from filedrop.models.team import TeamRole
from filedrop.schemas.file import FileResponse


class TeamCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)


class TeamResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    admin_id: uuid.UUID
    created_at: datetime


class TeamMemberAdd(BaseModel):
    email: EmailStr
    role: TeamRole = TeamRole.MEMBER


class TeamMemberResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    role: str
    joined_at: datetime


class TeamFileShareRequest(BaseModel):
    file_id: uuid.UUID


class TeamFileResponse(BaseModel):
    """Файл, расшаренный в команду"""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    shared_by: uuid.UUID
    shared_at: datetime
    file: FileResponse


class TeamFileShareResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    team_id: uuid.UUID
    file_id: uuid.UUID
    shared_by: uuid.UUID
    shared_at: datetime
