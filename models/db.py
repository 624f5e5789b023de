import os
from dotenv import load_dotenv
from motor.motor_asyncio import AsyncIOMotorClient

load_dotenv()

uri = (os.getenv("MONGO_URI") or "").strip()
host = os.getenv("DB_HOST", "127.0.0.1")
port = os.getenv("DB_PORT", "27017")
name = os.getenv("DB_NAME", "salah_tracker")

client = AsyncIOMotorClient(uri or f"mongodb://{host}:{port}")
db = client[name]
