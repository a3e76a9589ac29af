"""Route registration — mounts all routers under ``/api/v1``."""

from fastapi import FastAPI

from formflow_server.routes.answers import router as answers_router

API_PREFIX = "/api/v1"


def register_routes(app: FastAPI) -> None:
    app.include_router(answers_router, prefix=API_PREFIX)
