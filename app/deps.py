from fastapi import Depends
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from app.db import get_client, get_db
from app.repositories.places import PlaceRepository
from app.repositories.users import UserRepository


def get_place_repository(
    database: AsyncIOMotorDatabase = Depends(get_db),
    client: AsyncIOMotorClient = Depends(get_client),
) -> PlaceRepository:
    return PlaceRepository(database, client)


def get_user_repository(database: AsyncIOMotorDatabase = Depends(get_db)) -> UserRepository:
    return UserRepository(database)
