from motor.motor_asyncio import AsyncIOMotorDatabase

from rivnitz_live.app_config import get_app_environ_config
from rivnitz_live.schemas.init import init_beanie_odm
from rivnitz_live.shared.storage.mongo import get_mongo_client

MONGO_LABEL = "default"


async def init_schema() -> AsyncIOMotorDatabase:
    mongo_client = get_mongo_client(MONGO_LABEL)
    return await init_beanie_odm(mongo_client, get_app_environ_config().MONGO_DATABASE)


if __name__ == "__main__":
    import asyncio

    asyncio.run(init_schema())
