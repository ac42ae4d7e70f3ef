"""MongoDB/Beanie fixtures for testing.

Mongo-backed tests are skipped unless ``MONGO_URL_TEST`` points at a server.
"""

import os
from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from rivnitz_live.schemas import BEANIE_MODELS, init_beanie_odm


@pytest.fixture(scope="session")
def mongo_url() -> str:
    """MongoDB URL for testing, from MONGO_URL_TEST."""
    url = os.environ.get("MONGO_URL_TEST")
    if not url:
        pytest.skip("MONGO_URL_TEST environment variable not set")
    return url


@pytest.fixture(scope="session")
def test_db_name() -> str:
    """Get test database name."""
    return "rivnitz_live_test_db"


@pytest_asyncio.fixture(scope="function")
async def mongo_client(mongo_url: str) -> AsyncGenerator[AsyncIOMotorClient]:
    """Create MongoDB client for testing (function-scoped to avoid event loop issues)."""
    client: AsyncIOMotorClient = AsyncIOMotorClient(mongo_url)
    yield client
    client.close()


@pytest_asyncio.fixture(scope="function")
async def beanie_db(
    mongo_client: AsyncIOMotorClient,
    test_db_name: str,
) -> AsyncGenerator[AsyncIOMotorDatabase]:
    """Initialize Beanie with the test database and yield it."""
    db = await init_beanie_odm(mongo_client, test_db_name)

    yield db

    # Note: We don't drop database here since each test function gets a fresh
    # Beanie init. Use clear_collections fixture to clean data between tests.


@pytest_asyncio.fixture(autouse=False)
async def clear_collections(beanie_db: AsyncIOMotorDatabase) -> None:
    """
    Clear all collections before each test.

    Usage:
        @pytest.mark.usefixtures("clear_collections")
        async def test_something(beanie_db):
            ...
    """
    for model in BEANIE_MODELS:
        await model.get_motor_collection().delete_many({})
