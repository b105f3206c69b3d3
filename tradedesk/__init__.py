"""
TradeDesk: brokerage order ledger and portfolio reporting API.

Application package root. This is a modular monolith using
hexagonal architecture (ports & adapters) with domain-driven design.

Bounded contexts:
    - trading: Order submission and reconciliation, position mirroring,
      portfolio reporting.

Layers:
    - domain: Pure business logic, entities, order state machine, ports (ABCs), errors.
    - application: Use cases, DTOs, error policies.
    - infrastructure: Adapters (ledger database, broker REST API) implementing domain ports.
    - interfaces: FastAPI routers, Pydantic schemas.
    - shared: Cross-cutting concerns (errors, security, logging).
"""
