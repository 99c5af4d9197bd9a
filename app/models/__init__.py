from app.models.base import Base, utcnow
from app.models.raw_snapshot import RawSnapshot
from app.models.market_data import MasterMarketData, MarketLatest
from app.models.inventory import InventoryItem, InventoryStatus
from app.models.listing import Listing, ListingStatus
from app.models.expense import Expense

__all__ = [
    'Base', 'utcnow', 'RawSnapshot', 'MasterMarketData', 'MarketLatest',
    'InventoryItem', 'InventoryStatus', 'Listing', 'ListingStatus', 'Expense',
]
