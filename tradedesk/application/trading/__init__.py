"""
Application use cases for the trading bounded context.

Each use case represents a single business operation.
Use cases depend only on domain ports, never on infrastructure directly.
"""
