"""Feature routers mounted under ``/api``."""

from fastapi import FastAPI

from . import budgets, categories, goals, maintenance, months, predictions, recurring, transactions


def register_routers(app: FastAPI) -> None:
    """Attach all API routes to the FastAPI application."""

    for module in (months, transactions, predictions, recurring, budgets, goals, categories, maintenance):
        app.include_router(module.router, prefix="/api")
