# platform_connect/schemas/connection_schema.py
from pydantic import BaseModel
from typing import List, Optional
import uuid
from datetime import datetime


class ConnectionRead(BaseModel):
    """A stored connection without its credentials."""
    id: uuid.UUID
    platform: str
    platform_username: str
    platform_workspace_name: Optional[str]
    connected_at: datetime
    last_used_at: datetime
    is_active: bool
    has_valid_token: bool
    token_expires: Optional[datetime]
    scope: Optional[str]


class ConnectionList(BaseModel):
    success: bool = True
    connections: List[ConnectionRead]
    total: int


class ConnectionStatusUpdate(BaseModel):
    connection_id: uuid.UUID
    is_active: bool
