"""
=============================================================================
FastAPI Application for the TicketAgent message-understanding service
=============================================================================
Development server providing:
- Health check
- Session inspection and reset
- Full conversation turns (deterministic extraction + LLM analysis)
- Deterministic extraction preview

Endpoints Overview:
- GET  /health          - Health check
- GET  /dev/session     - Session snapshot for a user
- POST /dev/reset       - Clear a user's session (GET also accepted)
- POST /dev/message     - Run one conversation turn
- GET  /dev/extract     - Deterministic team extraction only

API Documentation: /docs (Swagger UI) or /redoc
=============================================================================
"""

# -----------------------------------------------------------------------------
# IMPORTS
# -----------------------------------------------------------------------------
from contextlib import asynccontextmanager
from typing import Callable

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from config.settings import API_HOST, API_PORT
from src.api.dev_router import router as dev_router
from src.pipeline.components import Components, build_components
from src.utils.logger import setup_logger

logger = setup_logger(__name__)


# -----------------------------------------------------------------------------
# APPLICATION FACTORY
# -----------------------------------------------------------------------------

def create_app(components_factory: Callable[[], Components] = build_components) -> FastAPI:
    """
    Create the FastAPI app.

    Components are built in the lifespan hook and stored on `app.state`.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting TicketAgent API...")
        components = components_factory()
        app.state.components = components
        try:
            yield
        finally:
            await components.close()
            app.state.components = None
            logger.info("TicketAgent API stopped")

    app = FastAPI(
        title="TicketAgent Assistant API",
        description="Team extraction and intent recognition for ticket search",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health(request: Request):
        """Health check"""
        components = getattr(request.app.state, "components", None)
        if components is None:
            return {"status": "starting"}
        return {
            "status": "ok",
            "teams": len(components.index),
            "llm_enabled": components.llm_client is not None,
            "sessions": components.store.get_stats(),
        }

    app.include_router(dev_router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=API_HOST, port=API_PORT)
