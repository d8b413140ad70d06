import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from core.linesheet_generator.config.template_store import get_template_store
from core.linesheet_generator.errors import ConfigurationError, LinesheetError
from core.logger_config import setup_logging
from core.system_config import sys_config

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(log_dir=sys_config.run_log_dir, level=sys_config.log_level)
    try:
        get_template_store().load()
        logger.info(f"Template ready: {sys_config.template_path}")
    except ConfigurationError as e:
        if sys_config.dev_mode:
            logger.warning(f"Template unavailable, generated fallback will be used (dev mode): {e}")
        else:
            logger.error(f"Template unavailable; linesheet generation will fail until fixed: {e}")
    if sys_config.mock_data:
        logger.warning("LINESHEET_MOCK_DATA is enabled: commerce endpoints serve sample data")
    yield


app = FastAPI(title="Linesheet Generator", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origin_regex=r"https://.*\.myshopify\.com",
    allow_origins=[o for o in [sys_config.allowed_origin] if o],
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
    allow_credentials=True,
    max_age=86400,
)

# Include Routers
from api.routers import linesheet
app.include_router(linesheet.router)


@app.exception_handler(LinesheetError)
async def linesheet_error_handler(request: Request, exc: LinesheetError):
    logger.error(f"{request.method} {request.url.path} failed: {exc.code}: {exc.message}")
    return JSONResponse(status_code=exc.http_status, content=exc.to_dict())


@app.get("/", response_class=PlainTextResponse)
async def root():
    return "Linesheet Generator API is running"


@app.get("/api/health")
async def health_check():
    return {"status": "ok"}
