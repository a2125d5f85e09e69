"""
Todo API package.

A FastAPI service for tracking todos backed by SQLite, with soft deletes and
an append-only audit log. Build the application with
`todo_api.main.create_app()` or serve `todo_api.main:app` with uvicorn.
"""

__version__ = "0.1.0"
