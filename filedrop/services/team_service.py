"""
Сервис команд и командного доступа к файлам
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from filedrop.exceptions import ConflictError, NotFoundError, PermissionError
from filedrop.models.team import Team, TeamFileShare, TeamMember, TeamRole
from filedrop.models.user import User
from filedrop.services.file_service import FileService
from filedrop.services.subscription_service import (
    Feature,
    SubscriptionService,
    ensure_feature,
)


class TeamService:
    """Сервис для управления командами"""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db
        self.file_service = FileService(db)
        self.subscription_service = SubscriptionService(db)

    async def create_team(self, name: str, creator_id: UUID) -> Team:
        """Создать команду; создатель становится её администратором"""
        team = Team(name=name, admin_id=creator_id)
        self.db.add(team)
        await self.db.flush()
        self.db.add(
            TeamMember(
                team_id=team.id,
                user_id=creator_id,
                role=TeamRole.ADMIN.value,
                added_by=creator_id,
            )
        )
        await self.db.commit()
        await self.db.refresh(team)
        return team

    async def get_user_teams(self, user_id: UUID) -> list[Team]:
        query = (
            select(Team)
            .join(TeamMember, TeamMember.team_id == Team.id)
            .where(TeamMember.user_id == user_id)
            .order_by(Team.created_at)
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_membership(self, team_id: UUID, user_id: UUID) -> TeamMember:
        """
        Членство пользователя в команде

        Raises:
            NotFoundError: Команды нет или пользователь в ней не состоит
        """
        result = await self.db.execute(
            select(TeamMember).where(
                TeamMember.team_id == team_id, TeamMember.user_id == user_id
            )
        )
        member = result.scalar_one_or_none()
        if member is None:
            raise NotFoundError("Команда", str(team_id))
        return member

    async def _require_admin(self, team_id: UUID, user_id: UUID) -> TeamMember:
        member = await self.get_membership(team_id, user_id)
        if member.role != TeamRole.ADMIN.value:
            raise PermissionError("управление командой", str(team_id))
        return member

    async def add_member(
        self,
        team_id: UUID,
        actor_id: UUID,
        email: str,
        role: TeamRole = TeamRole.MEMBER,
    ) -> TeamMember:
        await self._require_admin(team_id, actor_id)

        result = await self.db.execute(select(User).where(User.email == email))
        user = result.scalar_one_or_none()
        if user is None:
            raise NotFoundError("Пользователь", email)

        member = TeamMember(
            team_id=team_id, user_id=user.id, role=role.value, added_by=actor_id
        )
        self.db.add(member)
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise ConflictError("Пользователь уже в команде", field="email") from e
        await self.db.refresh(member)
        return member

    async def get_members(self, team_id: UUID, actor_id: UUID) -> list[TeamMember]:
        await self.get_membership(team_id, actor_id)
        result = await self.db.execute(
            select(TeamMember)
            .where(TeamMember.team_id == team_id)
            .order_by(TeamMember.joined_at)
        )
        return list(result.scalars().all())

    async def share_file(
        self, team_id: UUID, file_id: UUID, actor_id: UUID
    ) -> TeamFileShare:
        """Поделиться своим файлом с командой (функция тарифа pro)"""
        profile = await self.subscription_service.get_profile(actor_id)
        ensure_feature(profile, Feature.TEAM_SHARING)
        await self.get_membership(team_id, actor_id)
        file = await self.file_service.get_owned_file(file_id, actor_id)

        share = TeamFileShare(team_id=team_id, file_id=file.id, shared_by=actor_id)
        self.db.add(share)
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise ConflictError("Файл уже доступен команде", field="file_id") from e
        await self.db.refresh(share)
        return share

    async def get_team_files(
        self, team_id: UUID, actor_id: UUID
    ) -> list[TeamFileShare]:
        await self.get_membership(team_id, actor_id)
        result = await self.db.execute(
            select(TeamFileShare)
            .where(TeamFileShare.team_id == team_id)
            .order_by(TeamFileShare.shared_at.desc())
        )
        return list(result.unique().scalars().all())

    async def remove_share(self, team_id: UUID, share_id: UUID, actor_id: UUID) -> bool:
        """Убрать файл из команды; сам файл не удаляется"""
        await self._require_admin(team_id, actor_id)
        result = await self.db.execute(
            select(TeamFileShare).where(
                TeamFileShare.id == share_id, TeamFileShare.team_id == team_id
            )
        )
        share = result.unique().scalar_one_or_none()
        if share is None:
            raise NotFoundError("Доступ команды к файлу", str(share_id))

        await self.db.delete(share)
        await self.db.commit()
        return True
