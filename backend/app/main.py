"""Plant Identifier Application.

This is the main entry point for the plant identifier web service. Users
upload a photo, the photo is staged on disk and sent to Gemini, and the
answer is rendered on a single page.

Modules:
    - identify: upload form, Gemini integration and timeout handling
    - storage: upload staging, directory bootstrap and the retention sweeper
"""
import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import PlainTextResponse

from app.config import get_config
from app.identify.gemini import GeminiIdentifier
from app.identify.router import router as identify_router
from app.identify.wrapper import set_identifier
from app.storage.router import router as public_router
from app.storage.service import UploadStorage, bootstrap_directories
from app.storage.sweeper import RetentionSweeper

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

# Silence verbose third-party loggers.
# httpx/httpcore log every TCP connection and TLS handshake made by the
# Gemini SDK; google_genai logs each request it builds.
for _noisy in (
    "urllib3",
    "httpx",
    "httpcore",
    "google_genai",
):
    logging.getLogger(_noisy).setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup/shutdown events."""
    # Startup
    config = get_config()

    # Apply configured log level to root logger so that
    # `logging.level: "debug"` in plantid.settings.yaml activates DEBUG output.
    configured_level = getattr(logging, config.logging.level.upper(), None)
    if configured_level is not None:
        logging.getLogger().setLevel(configured_level)
        logger.info("Root logger level set to %s", config.logging.level.upper())

    storage_cfg = config.storage
    upload_dir = storage_cfg.uploads_path
    await bootstrap_directories(
        [storage_cfg.public_path, upload_dir, storage_cfg.css_path],
        placeholder=upload_dir / storage_cfg.placeholder_name,
    )

    UploadStorage.set_instance(UploadStorage(
        upload_dir=upload_dir,
        max_upload_bytes=storage_cfg.max_upload_bytes,
        allowed_mime_types=storage_cfg.allowed_mime_types,
    ))

    analysis_cfg = config.analysis
    identifier = GeminiIdentifier(
        api_key=config.gemini_api_key,
        model=analysis_cfg.model,
        temperature=analysis_cfg.temperature,
        top_k=analysis_cfg.top_k,
        top_p=analysis_cfg.top_p,
        max_output_tokens=analysis_cfg.max_output_tokens,
        prompt=analysis_cfg.prompt,
    )
    set_identifier(identifier)

    if not config.gemini_api_key:
        logger.warning("GEMINI_API_KEY is not set; identification requests will fail")
    elif await asyncio.to_thread(identifier.health_check):
        logger.info("Gemini model %s is reachable", analysis_cfg.model)
    else:
        logger.warning("Gemini model %s is not reachable; identification requests may fail", analysis_cfg.model)

    sweeper = RetentionSweeper(
        directory=upload_dir,
        max_age_seconds=storage_cfg.max_age_seconds,
        interval_seconds=storage_cfg.sweep_interval_seconds,
        placeholder_name=storage_cfg.placeholder_name,
    )
    await sweeper.start()
    app.state.sweeper = sweeper

    logger.info(
        "Server ready: port=%s, model=%s, api_key_present=%s, upload_dir=%s",
        config.server.port,
        analysis_cfg.model,
        bool(config.gemini_api_key),
        upload_dir,
    )

    yield  # Application runs here

    # Shutdown
    await sweeper.stop()
    set_identifier(None)
    UploadStorage.reset_instance()
    logger.info("Application shutdown complete")


# Create FastAPI application with metadata
app = FastAPI(
    title="Plant Identifier",
    description="Identify plants from a photo using Gemini",
    version="0.1.0",
    lifespan=lifespan,
)

# Register all routers
app.include_router(identify_router)
app.include_router(public_router)


@app.get("/health", response_class=PlainTextResponse)
async def health() -> str:
    """Liveness probe.

    Returns:
        str: Always "OK"; does not depend on the sweeper or uploads.
    """
    return "OK"
