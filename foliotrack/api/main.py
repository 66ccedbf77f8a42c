from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from foliotrack.adapters.postgres.db import ensure_schema
from foliotrack.api import settings
from foliotrack.api.routes import portfolio


def create_app() -> FastAPI:
    app = FastAPI(title="foliotrack API")

    # Dashboard origins come from FRONTEND_ORIGINS.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.on_event("startup")
    def _startup() -> None:
        # Derived-series tables must exist before the first read or run.
        ensure_schema()

    @app.get("/health", tags=["health"])
    def health() -> dict[str, str]:
        return {"status": "ok"}

    app.include_router(portfolio.router)

    return app


app = create_app()
