"""
Application layer package.

Contains use cases that orchestrate domain logic.
Use cases are the only entry points into the domain from the outside.
"""
