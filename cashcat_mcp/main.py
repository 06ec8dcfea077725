import httpx
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from .config import get_settings
from .logging_config import configure_logging
from .auth.exceptions import AuthenticationError, CashcatMCPError
from .auth.verifier import build_key_verifier
from .registry import build_tool_registry
from .mcp_transport.router import router as mcp_router

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.LOG_LEVEL, json_output=settings.LOG_JSON)

    # Initialize global HTTP client for connection pooling
    # timeouts=None removes global default timeout, allowing per-request timeouts
    app.state.http_client = httpx.AsyncClient(timeout=None)
    app.state.key_verifier = build_key_verifier(app.state.http_client, settings)
    app.state.tool_registry = build_tool_registry()

    yield

    # Shutdown: Close HTTP client
    await app.state.http_client.aclose()

app = FastAPI(
    title=settings.APP_NAME,
    lifespan=lifespan,
    debug=settings.DEBUG
)

# Global exception handlers
@app.exception_handler(AuthenticationError)
async def authentication_exception_handler(request: Request, exc: AuthenticationError):
    return JSONResponse(
        status_code=401,
        content={"error": exc.code, "message": exc.message}
    )

@app.exception_handler(CashcatMCPError)
async def gateway_exception_handler(request: Request, exc: CashcatMCPError):
    return JSONResponse(
        status_code=500,
        content={"error": exc.code, "message": exc.message}
    )

@app.get("/health")
async def health_check():
    return {"status": "ok", "app": settings.APP_NAME}

# Include routers
app.include_router(mcp_router)
