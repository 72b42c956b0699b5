from __future__ import annotations

import argparse
import asyncio
import getpass
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient

from core.config import settings
from services.security import ROLES_COLLECTION, get_password_hash


async def upsert_admin(*, name: str, email: str, password: str) -> dict:
    client = AsyncIOMotorClient(settings.mongo_uri)
    db = client[settings.database_name]
    try:
        existing: Optional[dict] = await db[ROLES_COLLECTION].find_one({"email": email})
        if existing:
            return existing
        doc = {"name": name, "email": email, "role": "admin", "hashed_password": get_password_hash(password)}
        result = await db[ROLES_COLLECTION].insert_one(doc)
        doc["_id"] = result.inserted_id
        return doc
    finally:
        client.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create the studio administrator account.")
    parser.add_argument("--name", default="Administrador")
    parser.add_argument("--email", required=True)
    args = parser.parse_args()
    admin_password = getpass.getpass("Password: ")

    created = asyncio.run(
        upsert_admin(name=args.name, email=args.email, password=admin_password)
    )
    print("Seeded admin:", {k: (str(v) if k == "_id" else v) for k, v in created.items() if k != "hashed_password"})
