#!/usr/bin/env python3
"""Initialize purchase journal tables."""

import asyncio
import sys
from pathlib import Path


# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from loguru import logger

from presale.config.settings import settings
from presale.database import create_journal_engine, init_journal


# Configure logger for script
logger.remove()
logger.add(sys.stderr, level="INFO")


async def init_database() -> None:
    """Create all journal tables."""
    logger.info(f"Connecting to database {settings.database_url}...")
    engine = create_journal_engine(settings.database_url, echo=settings.database_echo)

    try:
        logger.info("Creating tables (checkfirst=True)...")
        await init_journal(engine)
    finally:
        await engine.dispose()

    logger.success("Journal tables created successfully!")


if __name__ == "__main__":
    asyncio.run(init_database())
