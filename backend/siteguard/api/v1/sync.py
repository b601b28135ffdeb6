"""Offline sync endpoints for field clients."""

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from siteguard.config import settings
from siteguard.core.deps import get_current_user
from siteguard.core.rate_limit import RateLimiter
from siteguard.database import get_db
from siteguard.models.user import User
from siteguard.schemas.sync import SyncAckRequest, SyncPushRequest
from siteguard.services.sync import SyncService

router = APIRouter(prefix="/sync", tags=["sync"])

push_rate_limit = RateLimiter(
    max_calls=settings.SYNC_RATE_LIMIT_PER_MINUTE,
    window_seconds=60,
    key="sync_push",
    by="user",
)


@router.post("/push", response_model=dict)
async def sync_push(
    data: SyncPushRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
    _rl: Annotated[None, Depends(push_rate_limit)],
):
    """Apply a batch of offline operations.

    Ops are applied in order, each isolated from the others; the response
    carries exactly one result per op, correlated by ``opId``. Only a
    malformed envelope (missing ``clientId`` or ``ops``) fails the request.
    """
    svc = SyncService.for_session(db)
    results = await svc.push(
        client_id=data.client_id,
        user_id=current_user.id,
        ops=data.ops,
    )
    return {"results": [r.to_wire() for r in results]}


@router.get("/pull", response_model=dict)
async def sync_pull(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
    since: Annotated[
        datetime | None,
        Query(description="ISO timestamp; use the previous pull's timestamp"),
    ] = None,
):
    """Records changed strictly after ``since`` that the caller may see."""
    svc = SyncService.for_session(db)
    return await svc.pull(user_id=current_user.id, since=since)


@router.post("/ack", response_model=dict)
async def sync_ack(
    data: SyncAckRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    """Confirm the client has stored the server ids for its operations."""
    svc = SyncService.for_session(db)
    return await svc.acknowledge(current_user.id, data.acknowledgments)


@router.get("/status", response_model=dict)
async def sync_status(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    """Server time, the caller's operation ledger counts, and health."""
    svc = SyncService.for_session(db)
    return await svc.get_sync_status(user_id=current_user.id)
