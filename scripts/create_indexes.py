import asyncio, os
from motor.motor_asyncio import AsyncIOMotorClient
from dotenv import load_dotenv

load_dotenv()
MONGO_URI=os.getenv("MONGO_URI")
DB_NAME=os.getenv("DB_NAME","places")

async def main():
    client=AsyncIOMotorClient(MONGO_URI)
    db=client[DB_NAME]
    await db.users.create_index([("email", 1)], unique=True)
    await db.places.create_index([("creator", 1)])

    print("Indexes created")
    client.close()

asyncio.run(main())
