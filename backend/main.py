import os
import sys
import logging
from contextlib import asynccontextmanager

# Ensure this directory is in the path for Vercel and other runners
current_dir = os.path.dirname(os.path.abspath(__file__))
if current_dir not in sys.path:
    sys.path.append(current_dir)

from fastapi import FastAPI, Request, Depends
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import (
    LOG_LEVEL, IS_DEVELOPMENT, DATA_BACKEND, CORS_ORIGINS,
    SUPABASE_URL, SUPABASE_ANON_KEY, SUPABASE_SERVICE_ROLE_KEY, SUPABASE_JWT_SECRET, OPENAI_API_KEYS,
)
from database import init_db, get_store
from services.task_queue import get_task_queue
from routes.ai_routes import router as ai_router
from routes.memory_routes import router as memory_router
from routes.chat_routes import router as chat_router
from routes.folder_routes import router as folder_router
from routes.search_routes import router as search_router

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

HEALTH_TABLES = ("profiles", "folders", "chats", "messages", "user_memories", "semantic_memories")


@asynccontextmanager
async def lifespan(app: FastAPI):
    if DATA_BACKEND == "sql":
        init_db()
    yield
    # Let in-flight memory extraction finish before the loop goes away
    await get_task_queue().drain()


app = FastAPI(title="Memory Chat API", lifespan=lifespan)


# ── Error bodies: {"error": str, "details"?: str} ─────────────────
@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    body = exc.detail if isinstance(exc.detail, dict) else {"error": str(exc.detail)}
    return JSONResponse(status_code=exc.status_code, content=body, headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    body = {"error": "Invalid request body"}
    if IS_DEVELOPMENT:
        body["details"] = str(exc.errors())
    return JSONResponse(status_code=400, content=body)


@app.get("/api/health")
async def health(store=Depends(get_store)):
    """Configuration flags plus a reachability probe per table."""
    env = {
        "SUPABASE_URL": bool(SUPABASE_URL),
        "SUPABASE_ANON_KEY": bool(SUPABASE_ANON_KEY),
        "SUPABASE_SERVICE_ROLE_KEY": bool(SUPABASE_SERVICE_ROLE_KEY),
        "SUPABASE_JWT_SECRET": bool(SUPABASE_JWT_SECRET),
        "OPENAI_API_KEYS": bool(OPENAI_API_KEYS),
        "DATA_BACKEND": DATA_BACKEND,
    }
    tables = {}
    for table in HEALTH_TABLES:
        try:
            await store.select(table, columns="id", limit=1)
            tables[table] = {"status": "ok"}
        except Exception as e:
            logger.warning(f"Health check: table {table} unreachable: {e}")
            tables[table] = {"status": "error", "details": str(e) if IS_DEVELOPMENT else None}
    status = "success" if all(t["status"] == "ok" for t in tables.values()) else "degraded"
    return {"status": status, "env": env, "tables": tables}


app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(ai_router)
app.include_router(memory_router)
app.include_router(chat_router)
app.include_router(folder_router)
app.include_router(search_router)

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=IS_DEVELOPMENT)
