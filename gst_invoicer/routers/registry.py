"""Central router registry."""
from __future__ import annotations

from fastapi import FastAPI

from gst_invoicer.routers import auth, clients, companies, dashboard, invoices, templates

ALL_ROUTERS = (
    auth.router,
    companies.router,
    clients.router,
    templates.router,
    invoices.router,
    dashboard.router,
)


def include_all_routers(app: FastAPI) -> None:
    for router in ALL_ROUTERS:
        app.include_router(router)
