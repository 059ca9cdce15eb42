from uuid import UUID
from datetime import datetime
from typing import Any, List, Optional
from ninja import Schema


class ActorOut(Schema):
    id: UUID
    name: str
    email: str
    role: str


class AuditLogOut(Schema):
    id: UUID
    action: str
    resource: str
    resource_id: str
    actor: Optional[ActorOut] = None
    changes: List[Any]
    metadata: Any
    ip_address: Optional[str] = None
    user_agent: str
    created_at: datetime


class PaginationOut(Schema):
    page: int
    limit: int
    total: int
    pages: int


class AuditLogPageOut(Schema):
    logs: List[AuditLogOut]
    pagination: PaginationOut
