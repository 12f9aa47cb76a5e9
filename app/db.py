from typing import Optional
import os
from pathlib import Path
import certifi
from fastapi import HTTPException
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from dotenv import load_dotenv

# Get the project root directory (where .env should be)
project_root = Path(__file__).parent.parent
env_path = project_root / ".env"

# Load .env file from project root
load_dotenv(dotenv_path=env_path)

MONGO_URI = os.getenv("MONGO_URI")
DB_NAME = os.getenv("DB_NAME", "places")

# Global client and database handles
_client: Optional[AsyncIOMotorClient] = None
db = None


async def connect(*args, **kwargs):
    """
    Connect to MongoDB and keep the client and database handles in module globals.
    """
    global _client, db
    if not MONGO_URI:
        print(f"[DB] MONGO_URI is not set (looked for .env at {env_path})")
        raise ValueError(
            "MONGO_URI is not set. Add MONGO_URI=<connection string> to the .env file "
            "in the project root."
        )

    try:
        _client = AsyncIOMotorClient(MONGO_URI, tlsCAFile=certifi.where())
        db = _client[DB_NAME]

        await db.command("ping")
        print(f"[DB] Connected to MongoDB database '{DB_NAME}'")
    except Exception as e:
        print(f"[DB] MongoDB connection failed: {e}")
        _client = None
        db = None


async def close():
    """Close the MongoDB connection."""
    global _client, db
    if _client is not None:
        _client.close()
        _client = None
        db = None
        print("[DB] MongoDB connection closed")


def get_db() -> AsyncIOMotorDatabase:
    # Read the module global at call time, not the value at import time
    if db is None:
        raise HTTPException(status_code=500, detail="Database not connected")
    return db


def get_client() -> AsyncIOMotorClient:
    if _client is None:
        raise HTTPException(status_code=500, detail="Database not connected")
    return _client
