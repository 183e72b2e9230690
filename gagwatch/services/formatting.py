"""
Text rendering for alerts, stock reports and confirmations.
"""
from datetime import datetime
from typing import Iterable, List, Optional

from ..models.stock_data import StockItem, UserProfile, WatchCategory

DISCORD_MESSAGE_LIMIT = 2000
DEFAULT_BRAND_NAME = "GAG DROP WATCH"


def format_quantity(quantity: int) -> str:
    """Render a stock quantity with K/M suffixes (x999, x1.5K, x2.3M)."""
    if quantity >= 1_000_000:
        return f"x{quantity / 1_000_000:.1f}M"
    if quantity >= 1_000:
        return f"x{quantity / 1_000:.1f}K"
    return f"x{quantity}"


def format_timestamp(moment: datetime) -> str:
    """Render a datetime as en-US 12 hour local time, e.g. 6/15/2025, 3:05:07 PM."""
    hour = moment.hour % 12 or 12
    meridiem = "AM" if moment.hour < 12 else "PM"
    return (f"{moment.month}/{moment.day}/{moment.year}, "
            f"{hour}:{moment.minute:02d}:{moment.second:02d} {meridiem}")


def format_item_line(item: StockItem, include_icon: bool = True) -> str:
    """One ``{icon} {name}: {quantity}`` line; the icon is dropped when absent."""
    if include_icon and item.display_icon:
        return f"{item.display_icon} {item.name}: {format_quantity(item.quantity)}"
    return f"{item.name}: {format_quantity(item.quantity)}"


def build_alert_message(display_name: str, lines: List[str], timestamp: str,
                        brand_name: str = DEFAULT_BRAND_NAME) -> str:
    """Alert sent by the matching engine when watched items come in stock."""
    return (f"📦 Alert for {display_name} at {timestamp}:\n\n"
            f"Your preferred items are in stock:\n" + "\n".join(lines) + "\n\n"
            f"Check {brand_name} for more details!")


def format_watchlists(profile: UserProfile) -> str:
    """Four labelled watchlist lines, "None" for empty lists."""
    return "\n".join(
        f"{category.label}: {', '.join(profile.watchlist(category)) or 'None'}"
        for category in WatchCategory
    )


def build_preferences_message(profile: UserProfile) -> str:
    return (f"✅ Your Grow A Garden preferences:\n\n"
            f"{format_watchlists(profile)}\n\n"
            f"To update, use /register or visit the web interface.")


def build_confirmation_message(profile: UserProfile, mode: str,
                               brand_name: str = DEFAULT_BRAND_NAME) -> str:
    return (f"✅ Hi {profile.display_name}! You have successfully registered with {brand_name} ({mode}).\n\n"
            f"{format_watchlists(profile)}\n\n"
            f"You will be notified when these items are in stock.")


def split_message(text: str, limit: int = DISCORD_MESSAGE_LIMIT) -> List[str]:
    """
    Split text into chunks no longer than limit.

    Breaks happen on line boundaries; a single line longer than limit is cut
    hard.
    """
    if len(text) <= limit:
        return [text]

    chunks: List[str] = []
    current: Optional[str] = None
    for line in _hard_wrap(text.split("\n"), limit):
        if current is None:
            current = line
        elif len(current) + 1 + len(line) <= limit:
            current = f"{current}\n{line}"
        else:
            chunks.append(current)
            current = line
    if current is not None:
        chunks.append(current)
    return chunks


def _hard_wrap(lines: Iterable[str], limit: int) -> Iterable[str]:
    for line in lines:
        while len(line) > limit:
            yield line[:limit]
            line = line[limit:]
        yield line
