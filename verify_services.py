import asyncio
import sys

import asyncpg

from rideproxy.app.core.config import settings
from rideproxy.app.core.redis_client import ping_redis

# asyncpg connect needs the dsn without the SQLAlchemy driver suffix
db_url = settings.database_url.replace("+asyncpg", "")

async def check_services():
    ok = True
    print(f"Testing connection to: {db_url}")
    try:
        conn = await asyncpg.connect(db_url)
        print("✅ Database Connection Successful!")
        await conn.close()
    except Exception as e:
        print(f"❌ Database Connection Failed: {e}")
        ok = False

    print(f"Testing connection to: {settings.redis_url}")
    if await ping_redis():
        print("✅ Redis Connection Successful!")
    else:
        print("❌ Redis Connection Failed")
        ok = False

    if not settings.messagebird_api_key:
        print("⚠️ MESSAGEBIRD_API_KEY is not set; SMS relay will fail")

    sys.exit(0 if ok else 1)

if __name__ == "__main__":
    asyncio.run(check_services())
