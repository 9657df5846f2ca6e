"""Record adapters between UI-facing and storage-facing shapes."""

from smartmoney.adapters.accounts import (
    Account,
    from_storage,
    icon_to_id,
    id_to_icon,
    to_storage,
)
from smartmoney.adapters.icons import (
    ACCOUNT_ICONS,
    BANK_ICON,
    CATEGORY_ICONS,
    DEFAULT_ACCOUNT_ICON,
    DEFAULT_ICON_ID,
    GOOGLE_PAY_ICON,
    PHONE_PE_ICON,
    Icon,
    IconId,
    category_icon,
)

__all__ = [
    "ACCOUNT_ICONS",
    "BANK_ICON",
    "CATEGORY_ICONS",
    "DEFAULT_ACCOUNT_ICON",
    "DEFAULT_ICON_ID",
    "GOOGLE_PAY_ICON",
    "PHONE_PE_ICON",
    "Account",
    "Icon",
    "IconId",
    "category_icon",
    "from_storage",
    "icon_to_id",
    "id_to_icon",
    "to_storage",
]
