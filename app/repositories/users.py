from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase


class UserRepository:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db

    async def list_users(self) -> List[dict]:
        cursor = self.db.users.find({}, projection={"password": 0})
        return [doc async for doc in cursor]

    async def find_by_email(self, email: str) -> Optional[dict]:
        return await self.db.users.find_one({"email": email})

    async def create_user(self, doc: dict) -> dict:
        doc = {**doc, "places": []}
        res = await self.db.users.insert_one(doc)
        doc["_id"] = res.inserted_id
        return doc
