# platform_connect/models/platform_connection.py
from sqlmodel import SQLModel, Field, Column
from typing import Optional
from datetime import datetime
import uuid
from sqlalchemy import DateTime, String, UniqueConstraint

from platform_connect.utils import utcnow


class PlatformConnection(SQLModel, table=True):
    __tablename__ = "platform_connections"
    __table_args__ = (
        UniqueConstraint("platform", "platform_user_id", name="uq_platform_connections_platform_user"),
    )

    id: Optional[uuid.UUID] = Field(default_factory=uuid.uuid4, primary_key=True)
    platform: str = Field(sa_column=Column(String, index=True, nullable=False))
    platform_user_id: str = Field(sa_column=Column(String, nullable=False))
    platform_username: str
    platform_workspace_name: Optional[str] = None
    access_token: str  # fernet ciphertext
    refresh_token: Optional[str] = None  # fernet ciphertext
    token_type: str = Field(default="Bearer")
    # all timestamps are timezone-aware UTC
    expires_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
    scope: Optional[str] = None
    is_active: bool = Field(default=True)
    connected_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    last_used_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
