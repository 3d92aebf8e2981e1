"""FastAPI dependency injection helpers."""

from typing import Optional

from fastapi import Depends, Header, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from fleet_service.application.commands import VehicleCommandService
from fleet_service.application.identity import CallerIdentity
from fleet_service.application.queries import VehicleQueryService
from fleet_service.config import settings
from fleet_service.domain.repository import VehicleRepository
from fleet_service.infrastructure.database import async_session_factory
from fleet_service.infrastructure.events import DomainEventDispatcher, build_dispatcher
from fleet_service.infrastructure.redis_client import get_redis
from fleet_service.infrastructure.repositories import build_repository


async def get_db() -> AsyncSession:  # type: ignore[misc]
    """Yield an async DB session; commit on success, rollback on error."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_dispatcher() -> DomainEventDispatcher:
    redis = await get_redis() if settings.publish_events else None
    return build_dispatcher(redis, settings.events_channel)


async def get_repository(
    db: AsyncSession = Depends(get_db),
    dispatcher: DomainEventDispatcher = Depends(get_dispatcher),
) -> VehicleRepository:
    return build_repository(db, dispatcher)


async def get_command_service(
    repository: VehicleRepository = Depends(get_repository),
) -> VehicleCommandService:
    return VehicleCommandService(repository)


async def get_query_service(
    repository: VehicleRepository = Depends(get_repository),
) -> VehicleQueryService:
    return VehicleQueryService(repository)


async def get_caller(
    x_user_id: Optional[str] = Header(None),
    x_user_roles: Optional[str] = Header(None),
) -> CallerIdentity:
    """
    Identity forwarded by the authenticating gateway.

    Tokens are validated upstream; this service only reads the resulting
    user id and comma-separated role names.
    """
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Missing caller identity")
    return CallerIdentity.from_claims(x_user_id, (x_user_roles or "").split(","))
