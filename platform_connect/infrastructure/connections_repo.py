# platform_connect/infrastructure/connections_repo.py
from typing import Any, Dict, List, Optional
import uuid

from sqlalchemy import delete as sa_delete
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from platform_connect.models.platform_connection import PlatformConnection
from platform_connect.utils import utcnow

CONFLICT_COLUMNS = ["platform", "platform_user_id"]

# columns a re-authentication overwrites; id and connected_at keep their first values
UPSERT_UPDATE_COLUMNS = [
    "access_token",
    "refresh_token",
    "token_type",
    "expires_at",
    "platform_username",
    "platform_workspace_name",
    "scope",
    "is_active",
    "updated_at",
    "last_used_at",
]


class PlatformConnectionsRepository:
    """
    Repository for the PlatformConnection entity.
    All methods are async and expect an AsyncSession to be injected from the outside.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    def _insert(self):
        dialect = self.session.get_bind().dialect.name
        if dialect == "postgresql":
            return pg_insert(PlatformConnection)
        if dialect == "sqlite":
            return sqlite_insert(PlatformConnection)
        raise NotImplementedError(f"upsert is not supported on {dialect}")

    async def upsert(self, values: Dict[str, Any]) -> PlatformConnection:
        """
        Insert a connection or overwrite the one stored for the same (platform, platform_user_id).
        Commits and returns the stored row.
        """
        row = dict(values)
        row.setdefault("id", uuid.uuid4())
        stmt = self._insert().values(**row)
        stmt = stmt.on_conflict_do_update(
            index_elements=CONFLICT_COLUMNS,
            set_={col: stmt.excluded[col] for col in UPSERT_UPDATE_COLUMNS if col in row},
        )
        try:
            await self.session.execute(stmt)
            await self.session.commit()
        except SQLAlchemyError:
            await self.session.rollback()
            raise
        return await self.get_by_platform_user(row["platform"], row["platform_user_id"])

    async def get_by_id(self, id: uuid.UUID) -> Optional[PlatformConnection]:
        q = select(PlatformConnection).where(PlatformConnection.id == id)
        res = await self.session.execute(q)
        return res.scalar_one_or_none()

    async def get_by_platform_user(self, platform: str, platform_user_id: str) -> Optional[PlatformConnection]:
        q = (
            select(PlatformConnection)
            .where(
                PlatformConnection.platform == platform,
                PlatformConnection.platform_user_id == platform_user_id,
            )
            .execution_options(populate_existing=True)
        )
        res = await self.session.execute(q)
        return res.scalar_one_or_none()

    async def list_connections(self, platform: Optional[str] = None, active_only: bool = True) -> List[PlatformConnection]:
        q = select(PlatformConnection)
        if active_only:
            q = q.where(PlatformConnection.is_active == True)  # noqa: E712
        if platform:
            q = q.where(PlatformConnection.platform == platform)
        q = q.order_by(PlatformConnection.connected_at.desc())
        res = await self.session.execute(q)
        return list(res.scalars().all())

    async def set_active(self, cp: PlatformConnection, is_active: bool) -> PlatformConnection:
        cp.is_active = is_active
        cp.updated_at = utcnow()
        self.session.add(cp)
        await self.session.commit()
        await self.session.refresh(cp)
        return cp

    async def delete(self, cp: PlatformConnection) -> None:
        await self.session.delete(cp)
        await self.session.commit()

    async def delete_by_platform(self, platform: str) -> int:
        """Remove every connection of one platform; returns how many rows went."""
        res = await self.session.execute(
            sa_delete(PlatformConnection).where(PlatformConnection.platform == platform)
        )
        await self.session.commit()
        return res.rowcount or 0
