"""Beanie initialization for ODM."""

from beanie import init_beanie
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from rivnitz_live.schemas.live_session import AppUser, LiveSession, WaitingRoomEntry
from rivnitz_live.utils.app_errors import AppError, AppErrorCode, HttpStatusCode

BEANIE_MODELS = [LiveSession, WaitingRoomEntry, AppUser]


async def init_beanie_odm(
    mongo_client: AsyncIOMotorClient | AsyncIOMotorDatabase,
    database_name: str | None = None,
) -> AsyncIOMotorDatabase:
    """
    Initialize Beanie ODM with all document models.

    Args:
        mongo_client: Motor client or database instance
        database_name: Database name (only needed if passing client)

    Returns:
        The initialized database
    """
    if isinstance(mongo_client, AsyncIOMotorClient):
        if not database_name:
            raise AppError(
                errcode=AppErrorCode.E_INVALID_REQUEST,
                errmesg="database_name required when passing AsyncIOMotorClient",
                status_code=HttpStatusCode.BAD_REQUEST,
            )
        database = mongo_client[database_name]
    else:
        database = mongo_client

    await init_beanie(
        database=database,  # type: ignore[arg-type]
        document_models=BEANIE_MODELS,
    )
    return database


__all__ = ["BEANIE_MODELS", "init_beanie_odm"]
