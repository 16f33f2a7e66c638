"""
Transaction Ledger

Append-only, in-memory transaction ledger with per-account currency locks,
idempotent request replay and exact Decimal balance computation.
"""

__version__ = "1.0.0"
