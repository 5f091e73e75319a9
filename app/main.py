from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.v1.auto_posting.router import router as auto_posting_router
from app.core.config import settings
from app.core.logging import setup_logging


def create_app() -> FastAPI:
    setup_logging(settings.log_level, settings.log_file)

    app = FastAPI(title="Teaching Practice Auto-Posting")

    # CORS: allow frontend to call this API
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routers
    app.include_router(auto_posting_router)

    return app


app = create_app()
