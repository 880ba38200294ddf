"""Database seeding helpers."""

import logging
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from restopos.core.config import settings
from restopos.core.security import get_password_hash
from restopos.models import AppSetting, MenuItem

logger = logging.getLogger(__name__)

DEFAULT_MENU: tuple[tuple[str, str, str], ...] = (
    ("Appetizers", "Samosa", "8"),
    ("Appetizers", "French Fries", "50"),
    ("Appetizers", "Chilli Potato", "60"),
    ("Appetizers", "Honey Chilli Potato", "70"),
    ("Breads", "Idly", "50"),
    ("Breads", "Veg Momos", "50"),
    ("Breads", "Veg Fried Momos", "70"),
    ("Main Course", "Paneer Momos", "80"),
    ("Main Course", "Paneer Fried Momos", "100"),
    ("Main Course", "Chilli Paneer (Half)", "80"),
    ("Main Course", "Chilli Paneer (Full)", "150"),
    ("Main Course", "Gokul Thali", "100"),
    ("Main Course", "Gokul Special Thali", "140"),
    ("Main Course", "Chowmein (Half)", "50"),
    ("Main Course", "Chowmein (Full)", "90"),
    ("Main Course", "Biryani (Half)", "120"),
    ("Main Course", "Biryani (Full)", "180"),
)


def default_settings() -> dict[str, str]:
    """Return the settings a fresh store starts with."""
    return {
        "num_tables": "4",
        "restaurant_name": "Gokul Restaurant",
        "tax_rate": "0",
        "owner_password": get_password_hash(settings.owner_password),
    }


def ensure_seed_data(session: Session) -> None:
    """Seed the default menu and settings into an empty local store."""
    menu_count: int = session.scalar(select(func.count()).select_from(MenuItem)) or 0
    if menu_count == 0:
        session.add_all(
            MenuItem(category=category, name=name, price=Decimal(price)) for category, name, price in DEFAULT_MENU
        )
        logger.info("Seeded %s default menu items", len(DEFAULT_MENU))

    settings_count: int = session.scalar(select(func.count()).select_from(AppSetting)) or 0
    if settings_count == 0:
        session.add_all(AppSetting(key=key, value=value) for key, value in default_settings().items())
        logger.info("Seeded default settings")

    session.commit()
