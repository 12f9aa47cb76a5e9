from typing import Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import PyMongoError


class PairedWriteError(PyMongoError):
    """The second half of a place/user write matched nothing; the transaction is aborted."""


def _oid(value) -> Optional[ObjectId]:
    if isinstance(value, ObjectId):
        return value
    if not ObjectId.is_valid(value):
        return None
    return ObjectId(value)


class PlaceRepository:
    """
    Access to the ``places`` and ``users`` collections.

    A place's ``creator`` and the owner's ``places`` list are only ever
    written together, inside one transaction per operation.
    """

    def __init__(self, db: AsyncIOMotorDatabase, client: AsyncIOMotorClient):
        self.db = db
        self.client = client

    async def find_place(self, place_id: str) -> Optional[dict]:
        oid = _oid(place_id)
        if oid is None:
            return None
        return await self.db.places.find_one({"_id": oid})

    async def find_place_with_creator(self, place_id: str) -> Optional[dict]:
        oid = _oid(place_id)
        if oid is None:
            return None
        pipeline = [
            {"$match": {"_id": oid}},
            {"$lookup": {"from": "users", "localField": "creator", "foreignField": "_id", "as": "creator"}},
            {"$unwind": {"path": "$creator", "preserveNullAndEmptyArrays": True}},
        ]
        docs = await self.db.places.aggregate(pipeline).to_list(1)
        return docs[0] if docs else None

    async def find_user(self, user_id: str) -> Optional[dict]:
        oid = _oid(user_id)
        if oid is None:
            return None
        return await self.db.users.find_one({"_id": oid}, projection={"password": 0})

    async def find_user_with_places(self, user_id: str) -> Optional[dict]:
        oid = _oid(user_id)
        if oid is None:
            return None
        pipeline = [
            {"$match": {"_id": oid}},
            {"$project": {"password": 0}},
            {"$lookup": {"from": "places", "localField": "places", "foreignField": "_id", "as": "places"}},
        ]
        docs = await self.db.users.aggregate(pipeline).to_list(1)
        return docs[0] if docs else None

    async def create_place_for_user(self, place_doc: dict, user_id: str) -> dict:
        """Insert the place and add it to the owner's set, atomically."""
        user_oid = _oid(user_id)
        doc = {**place_doc, "creator": user_oid}
        async with await self.client.start_session() as session:
            async with session.start_transaction():
                res = await self.db.places.insert_one(doc, session=session)
                upd = await self.db.users.update_one(
                    {"_id": user_oid},
                    {"$addToSet": {"places": res.inserted_id}},
                    session=session,
                )
                if upd.matched_count == 0:
                    raise PairedWriteError(f"user {user_id} not found")
        doc["_id"] = res.inserted_id
        return doc

    async def update_place_fields(self, place_id: str, title: str, description: str) -> Optional[dict]:
        return await self.db.places.find_one_and_update(
            {"_id": _oid(place_id)},
            {"$set": {"title": title, "description": description}},
            return_document=ReturnDocument.AFTER,
        )

    async def delete_place_for_user(self, place_id: str, user_id: str) -> None:
        """Remove the place and pull it from the owner's set, atomically."""
        place_oid = _oid(place_id)
        async with await self.client.start_session() as session:
            async with session.start_transaction():
                res = await self.db.places.delete_one({"_id": place_oid}, session=session)
                if res.deleted_count == 0:
                    raise PairedWriteError(f"place {place_id} not found")
                await self.db.users.update_one(
                    {"_id": _oid(user_id)},
                    {"$pull": {"places": place_oid}},
                    session=session,
                )
