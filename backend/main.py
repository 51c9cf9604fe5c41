from contextlib import asynccontextmanager
import traceback

from fastapi import FastAPI, WebSocket, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import settings
from api import router, settings_router, handle_websocket
from services.container import ServiceContainer
from utils.logger import setup_logging, get_logger
from utils.rate_limiter import rate_limiter
from utils.utcnow import utcnow

# Setup logging
setup_logging(level=settings.LOG_LEVEL, json_format=settings.LOG_JSON)
logger = get_logger("main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events"""
    logger.info("Starting DEX spread arbitrage service...")

    services = getattr(app.state, "services", None)
    if services is None:
        services = ServiceContainer.build()
        app.state.services = services

    try:
        await services.start()
        logger.info("All services started successfully")
    except Exception as e:
        logger.critical(
            "Startup failed", error=str(e), traceback=traceback.format_exc()
        )
        raise

    yield

    logger.info("Shutting down...")
    await services.stop()
    logger.info("Shutdown complete")


app = FastAPI(
    title="Spreadhawk",
    description="Cross-DEX spread detection and flash-arbitrage execution",
    version="1.0.0",
    lifespan=lifespan,
)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    # Structured details (e.g. settings validation) are returned as the body.
    if isinstance(exc.detail, dict):
        return JSONResponse(status_code=exc.status_code, content=exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(
        "Unhandled exception",
        path=request.url.path,
        method=request.method,
        error=str(exc),
        traceback=traceback.format_exc(),
    )
    return JSONResponse(
        status_code=500, content={"detail": "Internal server error", "error": str(exc)}
    )


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


app.include_router(router, prefix="/api", tags=["Arbitrage"])
app.include_router(settings_router, prefix="/api", tags=["Settings"])


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    await handle_websocket(websocket, websocket.app.state.services.broadcaster)


@app.get("/health")
async def health_check(request: Request):
    """Liveness plus a summary of the background services"""
    services: ServiceContainer = request.app.state.services
    return {
        "status": "ok",
        "timestamp": utcnow().isoformat(),
        "services": {
            "scanner": services.detector.status(),
            "network_monitor": {"running": services.monitor.is_running},
            "broadcaster": {"subscribers": len(services.broadcaster.active_connections)},
            "wallet_configured": services.chain.wallet_address() is not None,
            "active_opportunities": len(services.store.list_active()),
        },
        "rate_limits": rate_limiter.get_status(),
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=False,
        log_level=settings.LOG_LEVEL.lower(),
    )
