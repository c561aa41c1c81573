"""
My Halal Flow - Source Package

A personal budgeting assistant: one user, one cash balance,
recurring income and expenses, savings goals, assets and
planned operations, with a balance projection.

DESIGN PRINCIPLES:
1. The balance is always the opening balance plus the ledger
2. Every mutation is applied whole or not at all
3. Deleting a transaction undoes exactly what recording it did
4. Reconciliation with the bank is manual and user-confirmed
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "My Halal Flow Team"
