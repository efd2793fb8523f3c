"""Database access layer for the Freight Billing web app."""

from .base import BaseRepository
from .bills import BillRepository
from .catalog import CatalogRepository
from .pricing import PricingRepository
from .settings import SettingsRepository
from .users import UserRepository

__all__ = [
    "BaseRepository",
    "BillRepository",
    "CatalogRepository",
    "PricingRepository",
    "SettingsRepository",
    "UserRepository",
]
