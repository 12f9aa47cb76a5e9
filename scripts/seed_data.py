import asyncio, os
from motor.motor_asyncio import AsyncIOMotorClient
from dotenv import load_dotenv
load_dotenv()

from app.repositories.places import PlaceRepository
from app.security.auth import hash_password


async def main():
    client = AsyncIOMotorClient(os.getenv("MONGO_URI"))
    db = client[os.getenv("DB_NAME","places")]
    user = await db.users.insert_one(
        {
            "name": "Demo User",
            "email": "demo@example.com",
            "password": hash_password("demo-password"),
            "image": "uploads/images/demo-user.png",
            "places": [],
        }
    )

    repo = PlaceRepository(db, client)
    place = await repo.create_place_for_user(
        {
            "title": "Empire State Building",
            "description": "One of the most famous sky scrapers in the world!",
            "address": "20 W 34th St, New York, NY 10001",
            "location": {"lat": 40.7484405, "lng": -73.9878584},
            "image": "uploads/images/demo-place.png",
        },
        str(user.inserted_id),
    )

    print("Seeded demo data successfully!")
    print(f"   - Created user: {user.inserted_id} (demo@example.com / demo-password)")
    print(f"   - Created place: {place['_id']}")
    client.close()

asyncio.run(main())
