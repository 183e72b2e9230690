"""
On-demand stock report for a single user.
"""
import logging
from typing import List, Optional

from .clock import Clock
from .formatting import format_item_line, format_timestamp, DEFAULT_BRAND_NAME
from .snapshot_store import SnapshotStore
from ..models.stock_data import StockSnapshot

STOCK_UNAVAILABLE_MESSAGE = "Stock data unavailable. Please try again later."

# (feed category, heading, show item icons)
REPORT_SECTIONS = (
    ("seed", "🌱 Seeds", True),
    ("gear", "🛠️ Gear", True),
    ("egg", "🥚 Eggs", True),
    ("travelingmerchant", "🚚 Traveling Merchant", True),
    ("cosmetics", "🎨 Cosmetics", False),
    ("honey", "🎉 Event (Honey)", False),
)


class StockQueryService:
    """Builds the full in-stock listing from the current snapshot. Read only."""

    def __init__(self, store: SnapshotStore, clock: Clock, brand_name: str = DEFAULT_BRAND_NAME):
        self.store = store
        self.clock = clock
        self.brand_name = brand_name
        self.logger = logging.getLogger(__name__)

    def build_sections(self, snapshot: StockSnapshot) -> List[str]:
        sections = []
        for category, heading, with_icons in REPORT_SECTIONS:
            items = snapshot.in_stock(category)
            if items:
                lines = "\n".join(format_item_line(item, include_icon=with_icons) for item in items)
                sections.append(f"{heading}:\n{lines}")
        return sections

    def build_stock_report(self, display_name: Optional[str] = None) -> str:
        """Stock check message, or the unavailable notice when there is no snapshot."""
        snapshot = self.store.get()
        if snapshot is None:
            self.logger.info("Stock check requested while no snapshot is available")
            return STOCK_UNAVAILABLE_MESSAGE

        timestamp = format_timestamp(self.clock.now())
        header = f"📦 Stock Check for {display_name} at {timestamp}:\n\n" if display_name \
            else f"📦 Stock Check at {timestamp}:\n\n"

        sections = self.build_sections(snapshot)
        if sections:
            return header + "\n\n".join(sections) + f"\n\nCheck {self.brand_name} for more details!"
        return header + f"No items currently in stock.\n\nCheck {self.brand_name} for updates!"
