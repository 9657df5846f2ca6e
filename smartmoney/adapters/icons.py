"""
Icon Capabilities and Identifiers

The UI draws accounts and categories with Icon objects. Storage can't
hold those, so every account icon also has a stable string identifier
(IconId). The lookup tables below are the only place the two meet, and
both are checked for exhaustiveness when this module is imported: adding
an IconId or a TransactionCategory without a table entry fails at import.
"""

from enum import Enum
from typing import Optional

from smartmoney.models.records import TransactionCategory


class Icon:
    """
    A drawable icon.

    Icons compare by identity: two Icon objects with the same name are
    still different icons. Adapters rely on this.
    """

    __slots__ = ("name", "glyph", "color")

    def __init__(self, name: str, glyph: str, color: str = "#6b7280"):
        self.name = name
        self.glyph = glyph
        self.color = color

    def render(self, size: int = 24) -> str:
        """Render as a small inline SVG text element."""
        return (
            f'<svg xmlns="http://www.w3.org/2000/svg" width="{size}" height="{size}" '
            f'aria-label="{self.name}"><text x="50%" y="50%" fill="{self.color}" '
            f'text-anchor="middle" dominant-baseline="central">{self.glyph}</text></svg>'
        )

    def __repr__(self) -> str:
        return f"Icon({self.name!r})"


class IconId(str, Enum):
    """Closed set of account icon identifiers written to storage."""
    GOOGLE_PAY = "GooglePayIcon"
    PHONE_PE = "PhonePeIcon"
    BANK = "BankIcon"


# Account icons
GOOGLE_PAY_ICON = Icon("GooglePay", "G", "#4285f4")
PHONE_PE_ICON = Icon("PhonePe", "P", "#5f259f")
BANK_ICON = Icon("Bank", "₹", "#374151")

# Category icons
FOOD_ICON = Icon("Food", "\U0001f354", "#ea580c")
BILLS_ICON = Icon("Bills", "\U0001f9fe", "#2563eb")
SHOPPING_ICON = Icon("Shopping", "\U0001f6cd", "#db2777")
TRANSPORT_ICON = Icon("Transport", "\U0001f697", "#7c3aed")
ENTERTAINMENT_ICON = Icon("Entertainment", "\U0001f3ac", "#4f46e5")
HEALTH_ICON = Icon("Health", "⚕", "#dc2626")
SALARY_ICON = Icon("Salary", "\U0001f4b0", "#16a34a")
OTHER_ICON = Icon("Other", "•", "#6b7280")


DEFAULT_ICON_ID = IconId.BANK

ACCOUNT_ICONS: dict[IconId, Icon] = {
    IconId.GOOGLE_PAY: GOOGLE_PAY_ICON,
    IconId.PHONE_PE: PHONE_PE_ICON,
    IconId.BANK: BANK_ICON,
}

DEFAULT_ACCOUNT_ICON = ACCOUNT_ICONS[DEFAULT_ICON_ID]

CATEGORY_ICONS: dict[TransactionCategory, Icon] = {
    TransactionCategory.FOOD: FOOD_ICON,
    TransactionCategory.BILLS: BILLS_ICON,
    TransactionCategory.SHOPPING: SHOPPING_ICON,
    TransactionCategory.TRANSPORT: TRANSPORT_ICON,
    TransactionCategory.ENTERTAINMENT: ENTERTAINMENT_ICON,
    TransactionCategory.HEALTH: HEALTH_ICON,
    TransactionCategory.SALARY: SALARY_ICON,
    TransactionCategory.FREELANCE: SALARY_ICON,
    TransactionCategory.OTHER: OTHER_ICON,
}


def check_exhaustive(table: dict, variants: type[Enum], table_name: str) -> None:
    """Raise RuntimeError if any enum member has no entry in table."""
    missing = [member.value for member in variants if member not in table]
    if missing:
        raise RuntimeError(f"{table_name} is missing entries for: {', '.join(missing)}")


check_exhaustive(ACCOUNT_ICONS, IconId, "ACCOUNT_ICONS")
check_exhaustive(CATEGORY_ICONS, TransactionCategory, "CATEGORY_ICONS")

# One identifier per icon object, for the capability -> identifier direction.
_ID_BY_ICON: dict[int, IconId] = {id(icon): icon_id for icon_id, icon in ACCOUNT_ICONS.items()}
if len(_ID_BY_ICON) != len(ACCOUNT_ICONS):
    raise RuntimeError("ACCOUNT_ICONS maps two identifiers to the same icon")


def icon_for_id(icon_id: IconId) -> Icon:
    return ACCOUNT_ICONS[icon_id]


def id_for_icon(icon: object) -> Optional[IconId]:
    """The identifier of a known account icon, or None."""
    return _ID_BY_ICON.get(id(icon))


def category_icon(category: TransactionCategory) -> Icon:
    return CATEGORY_ICONS.get(category, OTHER_ICON)
