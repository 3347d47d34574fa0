from motor.motor_asyncio import AsyncIOMotorClient

from config import DB_NAME, MONGO_URI

client = AsyncIOMotorClient(MONGO_URI)

# a database named in MONGO_URI wins over DB_NAME
db = client.get_default_database(DB_NAME)
