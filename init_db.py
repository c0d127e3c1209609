"""Create the FokusHub360 schema and seed default pricing.

Run once before starting the API server. Pass ``--reset`` to drop existing
tables first.
"""

import asyncio
import sys

from sqlalchemy import select

from hub.config import settings
from hub.db import AsyncSessionMaker, engine
from hub.models import Base, PricingConfig

CAMPAIGN_TYPES = ("standard", "premium", "enterprise")
CONTENT_TYPES = ("video", "image", "text", "audio", "mixed")


async def init_database(reset: bool = False):
    """Create all database tables."""
    print(f"Initializing database: {settings.db.url.split('@')[-1]}")

    async with engine.begin() as conn:
        if reset:
            await conn.run_sync(Base.metadata.drop_all)
            print("✓ Dropped existing tables")

        await conn.run_sync(Base.metadata.create_all)
        print("✓ Created all tables")

    print(f"Tables: {', '.join(Base.metadata.tables.keys())}")


async def seed_pricing():
    """Insert a default configuration per campaign/content type if none exist."""
    async with AsyncSessionMaker() as session:
        existing = (await session.execute(select(PricingConfig.id).limit(1))).first()
        if existing:
            print("✓ Pricing already configured")
            return

        defaults = settings.pricing
        for campaign_type in CAMPAIGN_TYPES:
            for content_type in CONTENT_TYPES:
                session.add(PricingConfig(
                    campaign_type=campaign_type,
                    content_type=content_type,
                    base_cost=defaults.default_base_cost,
                    participant_cost=defaults.default_participant_cost,
                    included_participants=defaults.default_included_participants,
                    max_participants=defaults.default_max_participants,
                    features={},
                ))
        await session.commit()
        print(f"✓ Seeded {len(CAMPAIGN_TYPES) * len(CONTENT_TYPES)} pricing configurations")


async def main():
    """Main entry point."""
    try:
        await init_database(reset="--reset" in sys.argv[1:])
        await seed_pricing()
    except Exception as e:
        print(f"\n❌ Error initializing database: {e}")
        import traceback
        traceback.print_exc()
        sys.exit(1)
    finally:
        await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
