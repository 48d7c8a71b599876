"""
Create Initial Admin User

Creates the admin configured by ADMIN_EMAIL / ADMIN_PASSWORD when no admin
exists yet. The API does the same on startup; this script is for setups
where the API has not run.

Usage:
    python -m database.seeds.create_admin_user
"""

import asyncio
import logging

from api.services.user_service import get_user_service
from shared.config import get_settings
from shared.logging_config import mask_email

logger = logging.getLogger(__name__)


async def create_admin_user() -> None:
    """Create initial admin user if none exists."""
    settings = get_settings()
    created = await get_user_service().seed_admin(settings.ADMIN_EMAIL, settings.ADMIN_PASSWORD)

    if created:
        logger.info("=" * 70)
        logger.info(f"Admin user created: {mask_email(settings.ADMIN_EMAIL)}")
        logger.info("=" * 70)
    else:
        logger.info("Admin user not created (an admin exists or credentials are missing).")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(create_admin_user())
