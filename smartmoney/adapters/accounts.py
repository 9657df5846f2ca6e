"""
Account Record Adapters

Two-way conversion between the UI-facing Account (whose icon is an
Icon object) and the storage-facing StoredAccount (whose icon is an
IconId string). Both directions are pure and never raise for an
unknown icon: they fall back to DEFAULT_ICON_ID / DEFAULT_ACCOUNT_ICON
and log a warning.
"""

from pydantic import BaseModel, ConfigDict, Field
import structlog

from smartmoney.adapters.icons import (
    DEFAULT_ACCOUNT_ICON,
    DEFAULT_ICON_ID,
    Icon,
    IconId,
    icon_for_id,
    id_for_icon,
)
from smartmoney.models.records import AccountType, StoredAccount


logger = structlog.get_logger(__name__)


class Account(BaseModel):
    """A linked account as the UI sees it."""
    model_config = ConfigDict(
        arbitrary_types_allowed=True,
        str_strip_whitespace=True,
        frozen=True,
    )

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=100)
    type: AccountType
    icon: Icon


def icon_to_id(icon: object) -> IconId:
    """Identifier for an icon; unknown icons map to DEFAULT_ICON_ID."""
    icon_id = id_for_icon(icon)
    if icon_id is None:
        logger.warning(
            "unknown_icon_capability",
            icon=repr(icon),
            fallback=DEFAULT_ICON_ID.value,
        )
        return DEFAULT_ICON_ID
    return icon_id


def id_to_icon(identifier: str) -> Icon:
    """Icon for a stored identifier; unknown identifiers map to DEFAULT_ACCOUNT_ICON."""
    try:
        return icon_for_id(IconId(identifier))
    except ValueError:
        logger.warning(
            "unknown_icon_identifier",
            icon=identifier,
            fallback=DEFAULT_ICON_ID.value,
        )
        return DEFAULT_ACCOUNT_ICON


def to_storage(account: Account) -> StoredAccount:
    """Convert a UI Account into a StoredAccount record."""
    return StoredAccount(
        id=account.id,
        name=account.name,
        type=account.type,
        icon=icon_to_id(account.icon).value,
    )


def from_storage(stored: StoredAccount) -> Account:
    """Convert a StoredAccount record into an Account usable by the UI."""
    return Account(
        id=stored.id,
        name=stored.name,
        type=stored.type,
        icon=id_to_icon(stored.icon),
    )
