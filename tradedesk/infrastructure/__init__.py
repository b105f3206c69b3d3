"""
Infrastructure layer package.

Contains concrete implementations (adapters) of the ports
defined in the domain layer. This is where the ledger database
and the broker REST API integrations live.
"""
