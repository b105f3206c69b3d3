"""
Domain layer package.

Entities, the order state machine, ports and portfolio analytics.
Nothing here imports a framework or performs IO.
"""
