"""
SmartMoney - Local Store Package

Local-first data cache for the SmartMoney personal finance tracker.
Each signed-in user (tenant) owns one embedded SQLite database that
holds their transactions, linked accounts, budgets and profile.

PRINCIPLES:
1. One live handle per tenant per process
2. Handles open lazily, close explicitly
3. Schema upgrades are additive and never drop rows
4. A rename either moves everything or changes nothing
"""

__version__ = "1.0.0"
__author__ = "SmartMoney Team"
