from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from uchat.core.config import settings
from uchat.core.error_handler import (
    custom_exception_handler,
    storage_exception_handler,
    validation_exception_handler,
)
from uchat.core.exceptions import BaseAPIException
from uchat.core.log_config import logger

from uchat.api.auth import router as auth_router
from uchat.api.rooms import router as room_router
from uchat.api.messages import router as message_router
from uchat.api.users import router as user_router
from uchat.api.websocket import router as websocket_router 
from uchat.database.session import initialize_db
from uchat.utils.clock import utcnow
from uchat.utils.connection_registry import ConnectionRegistry
from uchat.utils.timing_middleware import TimingMiddleware


@asynccontextmanager
async def lifespan(app: FastAPI):
    await initialize_db()
    # The registry lives exactly as long as the process serves requests.
    app.state.connection_registry = ConnectionRegistry()
    logger.info("Uchat server started.")
    yield
    await app.state.connection_registry.close()
    logger.info("Uchat server stopped.")

app = FastAPI(title="Uchat", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],  
    allow_headers=["*"],  
)

app.add_exception_handler(BaseAPIException, custom_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(SQLAlchemyError, storage_exception_handler)
app.add_middleware(TimingMiddleware)

app.include_router(auth_router)
app.include_router(room_router)
app.include_router(message_router)
app.include_router(user_router)
app.include_router(websocket_router)


@app.get("/api/health", tags=["health"])
async def health():
    return {
        "status": "ok",
        "message": "Uchat server is running",
        "timestamp": utcnow().isoformat(),
    }
