"""
FastAPI backend for the statgrid webapp.

This module provides the web API behind the spreadsheet-style data view and
variable view: edit reconciliation, the operation queue that applies edits to
the variable and data stores, table structures and context menus.

WebSocket support pushes applied or failed operations to connected views.
"""

import os

import uvicorn
from fastapi import FastAPI, HTTPException, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, ORJSONResponse

from api.app_config import app_config
from api.shared.logger import get_logger, setup_logging

setup_logging(app_config.get_grid_settings().log_level)
logger = get_logger(__name__)

from api.data_table import router as data_table_router
from api.grid.session import get_grid_session
from api.grid_state import router as grid_state_router
from api.system import log_error
from api.system import router as system_router
from api.variable_table import router as variable_table_router
from websocket import ws_manager

# Create FastAPI app
app = FastAPI(
    title="statgrid API",
    description="API for the statgrid spreadsheet data and variable views",
    version="1.0.0",
    default_response_class=ORJSONResponse,
)


# ============= Exception Handlers for Error Logging =============


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Log HTTP exceptions and return JSON response."""
    # Only log 5xx errors (server errors)
    if exc.status_code >= 500:
        log_error(
            endpoint=str(request.url.path),
            message=str(exc.detail),
            level="error",
            details=f"Status code: {exc.status_code}",
        )
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Log unexpected exceptions and return JSON response."""
    log_error(
        endpoint=str(request.url.path),
        message=str(exc),
        level="critical",
        details=f"Unhandled exception: {type(exc).__name__}",
        exc=exc,
    )
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )


# Web dev mode serves the frontend from another origin
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,  # Must be False when using allow_origins=["*"]
    allow_methods=["*"],
    allow_headers=["*"],
)


# Include API routes
app.include_router(data_table_router, prefix="/api", tags=["grid-data"])
app.include_router(variable_table_router, prefix="/api", tags=["grid-variables"])
app.include_router(grid_state_router, prefix="/api", tags=["grid"])
app.include_router(system_router, prefix="/api", tags=["system"])


# ============= Startup / Shutdown Events =============


@app.on_event("startup")
async def startup_event():
    """Log startup configuration."""
    settings = get_grid_session().settings
    logger.info("statgrid webapp starting...")
    logger.info("Config folder: %s", app_config.get_config_path())
    logger.info(
        "Grid minimums: %d rows x %d columns",
        settings.min_rows, settings.min_columns,
    )


@app.on_event("shutdown")
async def shutdown_event():
    """Apply every operation still queued before exiting."""
    await get_grid_session().queue.shutdown()
    logger.info("statgrid webapp stopped")


# ============= WebSocket Endpoints =============


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket, client_id: str = None):
    """
    Main WebSocket endpoint for real-time updates.

    Clients subscribe to the ``grid`` channel to receive:
    - operation_completed / operation_failed after each queued operation
    - selection_changed when a view's selection changes

    Message format (JSON):
    {
        "type": "subscribe" | "unsubscribe" | "ping",
        "channel": "channel_name",
        "data": {}
    }
    """
    await ws_manager.connect(websocket, client_id)

    try:
        while True:
            message_text = await websocket.receive_text()
            response = await ws_manager.handle_message(websocket, message_text)
            if response:
                await ws_manager.send_to_connection(websocket, response)

    except WebSocketDisconnect:
        await ws_manager.disconnect(websocket)
    except Exception as e:
        logger.error("WebSocket error: %s", e)
        await ws_manager.disconnect(websocket)


@app.get("/api/ws/stats")
async def get_websocket_stats():
    """Get WebSocket connection statistics."""
    return {
        "total_connections": ws_manager.get_connection_count(),
    }


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="statgrid backend server")
    parser.add_argument(
        "--port",
        type=int,
        default=int(os.environ.get("STATGRID_PORT", 8000)),
        help="Port to run the server on (default: 8000 or STATGRID_PORT env var)",
    )
    parser.add_argument(
        "--host",
        type=str,
        default="127.0.0.1",
        help="Host to bind to (default: 127.0.0.1)",
    )
    parser.add_argument(
        "--reload",
        action=argparse.BooleanOptionalAction,
        default=False,
        help="Enable auto-reload",
    )
    args = parser.parse_args()

    uvicorn.run(
        "main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level="info",
    )
