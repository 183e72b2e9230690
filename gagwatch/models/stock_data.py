"""
Core data models for the GAG Drop Watch notification system.
"""
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Optional, List, Dict, Any, Mapping, Tuple
from enum import Enum
import json
import math
import re


RECIPIENT_ID_PATTERN = re.compile(r'^\d+$')


def utc_now() -> datetime:
    """Naive UTC timestamp, the form stored in the database and status payloads."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def is_valid_recipient_id(recipient_id: Any) -> bool:
    """Check that a recipient id is a numeric string."""
    return isinstance(recipient_id, str) and bool(RECIPIENT_ID_PATTERN.match(recipient_id))


class WatchCategory(Enum):
    """Watchlist categories and the feed category each one reads from."""
    SEEDS = "seeds"
    GEAR = "gear"
    EGGS = "eggs"
    TRAVELING_MERCHANT = "travelingmerchant"

    @property
    def feed_key(self) -> str:
        """Category key used by the stock feed payload."""
        return {
            WatchCategory.SEEDS: "seed",
            WatchCategory.GEAR: "gear",
            WatchCategory.EGGS: "egg",
            WatchCategory.TRAVELING_MERCHANT: "travelingmerchant",
        }[self]

    @property
    def label(self) -> str:
        """Human readable label with icon."""
        return {
            WatchCategory.SEEDS: "🌱 Seeds",
            WatchCategory.GEAR: "🛠️ Gear",
            WatchCategory.EGGS: "🥚 Eggs",
            WatchCategory.TRAVELING_MERCHANT: "🚚 Traveling Merchant",
        }[self]


@dataclass(frozen=True)
class StockItem:
    """One shop entry reported by the feed."""
    name: str
    quantity: int
    display_icon: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'StockItem':
        """Create instance from a feed item dictionary."""
        if not isinstance(data, dict):
            raise ValueError(f"Stock item must be an object, got {type(data).__name__}")

        name = data.get('name')
        if not isinstance(name, str) or not name.strip():
            raise ValueError(f"Stock item has no name: {data!r}")

        quantity = data.get('quantity')
        # bool is an int subclass; reject it explicitly
        if isinstance(quantity, bool) or not isinstance(quantity, (int, float)):
            raise ValueError(f"Stock item {name!r} has invalid quantity: {quantity!r}")
        if not math.isfinite(quantity) or quantity != int(quantity) or quantity < 0:
            raise ValueError(f"Stock item {name!r} has invalid quantity: {quantity!r}")

        icon = data.get('emoji')
        return cls(
            name=name.strip(),
            quantity=int(quantity),
            display_icon=icon if isinstance(icon, str) and icon else None
        )

    @property
    def in_stock(self) -> bool:
        return self.quantity > 0


@dataclass(frozen=True)
class StockSnapshot:
    """
    Immutable reading of every shop category at one point in time.

    A snapshot is built whole from one feed payload; any malformed item
    rejects the payload so partially parsed snapshots never exist.
    """
    categories: Mapping[str, Tuple[StockItem, ...]]
    received_at: datetime

    @classmethod
    def from_payload(cls, data: Dict[str, Any], received_at: Optional[datetime] = None) -> 'StockSnapshot':
        """Create a snapshot from the ``data`` object of a feed message."""
        if not isinstance(data, dict):
            raise ValueError("Feed data must be an object")

        categories: Dict[str, Tuple[StockItem, ...]] = {}
        for category, section in data.items():
            items = section.get('items') if isinstance(section, dict) else None
            if items is None:
                categories[category] = ()
                continue
            if not isinstance(items, list):
                raise ValueError(f"Items for category {category!r} must be a list")
            categories[category] = tuple(StockItem.from_dict(item) for item in items)

        return cls(
            categories=MappingProxyType(categories),
            received_at=received_at or utc_now()
        )

    def items(self, category: str) -> Tuple[StockItem, ...]:
        """Items for a feed category, empty when the feed omitted it."""
        return self.categories.get(category, ())

    def in_stock(self, category: str) -> List[StockItem]:
        """Items with a positive quantity for a feed category."""
        return [item for item in self.items(category) if item.in_stock]


@dataclass
class UserProfile:
    """Registered recipient with watchlists and per-item cooldown ledger."""
    recipient_id: str
    display_name: str
    seeds: List[str] = field(default_factory=list)
    gear: List[str] = field(default_factory=list)
    eggs: List[str] = field(default_factory=list)
    travelingmerchant: List[str] = field(default_factory=list)
    cooldown_ledger: Dict[str, int] = field(default_factory=dict)
    created_at: datetime = None
    updated_at: datetime = None

    def __post_init__(self):
        if self.created_at is None:
            self.created_at = utc_now()
        if self.updated_at is None:
            self.updated_at = utc_now()

    def watchlist(self, category: WatchCategory) -> List[str]:
        """Get the watchlist for a category."""
        return getattr(self, category.value)

    def has_preferences(self) -> bool:
        """Check if at least one watchlist has an item."""
        return any(self.watchlist(category) for category in WatchCategory)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for database storage."""
        data = asdict(self)
        for category in WatchCategory:
            data[category.value] = json.dumps(data[category.value])
        data['cooldown_ledger'] = json.dumps(data['cooldown_ledger'])
        data['created_at'] = data['created_at'].isoformat()
        data['updated_at'] = data['updated_at'].isoformat()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'UserProfile':
        """Create instance from dictionary."""
        data = dict(data)
        for category in WatchCategory:
            value = data.get(category.value)
            if isinstance(value, str):
                value = json.loads(value)
            data[category.value] = list(value or [])

        ledger = data.get('cooldown_ledger')
        if isinstance(ledger, str):
            ledger = json.loads(ledger)
        data['cooldown_ledger'] = {str(name): int(ts) for name, ts in (ledger or {}).items()}

        if isinstance(data.get('created_at'), str):
            data['created_at'] = datetime.fromisoformat(data['created_at'])
        if isinstance(data.get('updated_at'), str):
            data['updated_at'] = datetime.fromisoformat(data['updated_at'])

        return cls(**data)

    def validate(self) -> bool:
        """Validate user profile."""
        if not is_valid_recipient_id(self.recipient_id):
            return False
        if not self.display_name or not self.display_name.strip():
            return False
        return True


@dataclass(frozen=True)
class DispatchTask:
    """One outbound message ready to send to one recipient."""
    recipient_id: str
    rendered_text: str


@dataclass
class MatchingRunResult:
    """Outcome of one matching cycle."""
    started_at: datetime
    tasks: List[DispatchTask] = field(default_factory=list)
    users_checked: int = 0
    users_failed: int = 0
    skipped_reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'started_at': self.started_at.isoformat(),
            'tasks': len(self.tasks),
            'users_checked': self.users_checked,
            'users_failed': self.users_failed,
            'skipped_reason': self.skipped_reason,
        }


def normalize_item_names(names: Any) -> List[str]:
    """Trim, drop blanks and de-duplicate item names, keeping first-seen order."""
    if names is None:
        return []
    if isinstance(names, str):
        names = names.split(',')

    seen = set()
    result = []
    for name in names:
        cleaned = str(name).strip()
        if cleaned and cleaned not in seen:
            seen.add(cleaned)
            result.append(cleaned)
    return result
