"""
Interfaces layer package.

Contains FastAPI routers, Pydantic request/response schemas,
input validation and the command-line entry point.
No business logic belongs here. Routes call use cases and return responses.
"""
