import os
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from google import genai

from viva_backend import config
from viva_backend.database import close_db_pool, create_db_pool, run_schema_migrations
from viva_backend.exceptions import register_exception_handlers
from viva_backend.repositories import VivaResultRepository
from viva_backend.routers import health_router, sync_router, vapi_router
from viva_backend.services import GoogleSheetsService, ResultSink, VapiService, VivaProcessingService
from viva_evaluator import VivaEvaluator

logger = logging.getLogger(__name__)


def create_evaluator() -> VivaEvaluator:
    """Gemini-backed evaluator when an API key is configured, fallback-only otherwise."""
    client = None
    if config.USE_LLM_EVALUATION and config.GEMINI_API_KEY:
        client = genai.Client(api_key=config.GEMINI_API_KEY)
        logger.info(f"Viva evaluation using Gemini model {config.GEMINI_MODEL}")
    else:
        logger.info("GEMINI_API_KEY not set, viva evaluation uses fallback scoring")
    return VivaEvaluator(client=client, model=config.GEMINI_MODEL)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create long-lived clients on startup and release them on shutdown."""
    pool = await create_db_pool(config.ADMIN_DATABASE_URL)
    repository = None
    if pool is not None:
        await run_schema_migrations(pool)
        repository = VivaResultRepository(pool)

    sheets = GoogleSheetsService()
    app.state.db_pool = pool
    app.state.sheets_service = sheets
    app.state.vapi_service = VapiService()
    app.state.processing_service = VivaProcessingService(
        evaluator=create_evaluator(),
        sink=ResultSink(sheets, repository),
        repository=repository,
    )
    yield
    # Cleanup on shutdown
    await close_db_pool(pool)


app = FastAPI(title="Viva Backend", lifespan=lifespan)

# CORS middleware for the viva front-end
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Restrict in production
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(health_router)
app.include_router(vapi_router)
app.include_router(sync_router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=int(os.environ.get("PORT", 8080)))
