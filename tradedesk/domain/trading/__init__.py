"""
Trading bounded context: domain layer.

This module contains all domain logic for the trading context:
- Orders and their lifecycle state machine
- Positions mirrored from the broker
- Instrument reference data
- Portfolio analytics over the ledger
"""
