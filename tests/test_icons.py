"""
Tests for icon identifiers and account adapters.
"""

from enum import Enum

import pytest

from smartmoney.adapters import Account, from_storage, to_storage
from smartmoney.adapters.accounts import icon_to_id, id_to_icon
from smartmoney.adapters.icons import (
    ACCOUNT_ICONS,
    BANK_ICON,
    CATEGORY_ICONS,
    DEFAULT_ACCOUNT_ICON,
    DEFAULT_ICON_ID,
    FOOD_ICON,
    GOOGLE_PAY_ICON,
    Icon,
    IconId,
    category_icon,
    check_exhaustive,
)
from smartmoney.models.records import AccountType, StoredAccount, TransactionCategory


class TestIconTables:
    """The lookup tables cover every identifier and category."""

    def test_every_icon_id_has_an_icon(self):
        """Test ACCOUNT_ICONS is exhaustive over IconId."""
        assert set(ACCOUNT_ICONS) == set(IconId)

    def test_every_category_has_an_icon(self):
        """Test CATEGORY_ICONS is exhaustive over TransactionCategory."""
        assert set(CATEGORY_ICONS) == set(TransactionCategory)

    def test_check_exhaustive_names_missing_members(self):
        """Test that an incomplete table is rejected."""
        with pytest.raises(RuntimeError, match="GooglePayIcon"):
            check_exhaustive({IconId.BANK: BANK_ICON}, IconId, "ACCOUNT_ICONS")

    def test_check_exhaustive_accepts_complete_table(self):
        """Test that a complete table passes."""
        class Color(str, Enum):
            RED = "red"

        check_exhaustive({Color.RED: BANK_ICON}, Color, "COLORS")

    def test_default_is_bank(self):
        """Test the fallback identifier and icon."""
        assert DEFAULT_ICON_ID == IconId.BANK
        assert DEFAULT_ACCOUNT_ICON is BANK_ICON

    def test_freelance_shares_salary_icon(self):
        """Test category_icon for income categories."""
        assert category_icon(TransactionCategory.FREELANCE) is category_icon(TransactionCategory.SALARY)
        assert category_icon(TransactionCategory.FOOD) is FOOD_ICON

    def test_icons_compare_by_identity(self):
        """Test that a look-alike icon is not the same icon."""
        lookalike = Icon("Bank", BANK_ICON.glyph, BANK_ICON.color)
        assert lookalike != BANK_ICON
        assert BANK_ICON == BANK_ICON

    def test_render(self):
        """Test SVG rendering."""
        svg = GOOGLE_PAY_ICON.render(32)
        assert svg.startswith("<svg")
        assert 'width="32"' in svg
        assert 'aria-label="GooglePay"' in svg


class TestAccountAdapters:
    """Conversions between Account and StoredAccount."""

    def test_round_trip_every_icon(self):
        """Test that every known icon survives to_storage -> from_storage."""
        for icon_id, icon in ACCOUNT_ICONS.items():
            account = Account(id="acc-1", name="Wallet", type=AccountType.UPI, icon=icon)
            stored = to_storage(account)
            assert stored.icon == icon_id.value

            restored = from_storage(stored)
            assert restored.icon is icon
            assert restored.id == "acc-1"
            assert restored.name == "Wallet"
            assert restored.type == AccountType.UPI

    def test_stored_round_trip(self):
        """Test that from_storage -> to_storage returns an equal record."""
        stored = StoredAccount(id="acc-2", name="HDFC Bank", type=AccountType.BANK, icon="PhonePeIcon")
        assert to_storage(from_storage(stored)) == stored

    def test_unknown_identifier_falls_back(self):
        """Test that a stored identifier we don't know loads as the default icon."""
        stored = StoredAccount(id="acc-9", name="Paytm", type=AccountType.UPI, icon="PaytmIcon")
        assert from_storage(stored).icon is DEFAULT_ACCOUNT_ICON
        assert id_to_icon("") is DEFAULT_ACCOUNT_ICON

    def test_unknown_capability_falls_back(self):
        """Test that an icon with no identifier is stored as the default identifier."""
        account = Account(id="acc-1", name="Food card", type=AccountType.BANK, icon=FOOD_ICON)
        assert to_storage(account).icon == DEFAULT_ICON_ID.value
        assert icon_to_id(object()) == DEFAULT_ICON_ID

    def test_account_keeps_icon_instance(self):
        """Test that the model holds the exact icon object it was given."""
        account = Account(id="acc-1", name="GPay", type=AccountType.UPI, icon=GOOGLE_PAY_ICON)
        assert account.icon is GOOGLE_PAY_ICON
