import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from openai import AsyncOpenAI
from postgrest.exceptions import APIError
from starlette.exceptions import HTTPException as StarletteHTTPException
from supabase import create_client

from config import Settings, cors_origins_from_env

# Routers
from routers.passport_router import router as passport_router, ai_router

# Services
from services.chat_service import ChatService
from services.conversation_service import ConversationService
from services.llm_service import LLMService
from services.memory_service import MemoryTracker
from services.session_service import SessionService

# Exceptions
from exceptions import (
    LLMServiceError,
    PassportError,
    global_exception_handler,
    http_exception_handler,
    llm_exception_handler,
    passport_exception_handler,
    supabase_api_exception_handler,
    validation_exception_handler,
)

load_dotenv()

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def build_conversation_service(settings: Settings) -> ConversationService:
    """Construct every client once; handlers receive them through app.state."""
    supabase = create_client(settings.supabase_url, settings.supabase_key)
    llm = LLMService(
        AsyncOpenAI(api_key=settings.openai_api_key),
        model=settings.openai_model,
        json_model=settings.openai_json_model,
        tool_choice=settings.tool_choice,
    )
    return ConversationService(
        settings=settings,
        llm=llm,
        sessions=SessionService(supabase),
        chats=ChatService(supabase),
        memory_tracker=MemoryTracker(llm, entity_cap=settings.entity_cap),
    )


def create_app(service: Optional[ConversationService] = None, settings: Optional[Settings] = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if getattr(app.state, "conversation_service", None) is None:
            loaded = settings or Settings.load()
            logging.getLogger().setLevel(loaded.log_level)
            app.state.conversation_service = build_conversation_service(loaded)
            logger.info("🚀 Idea Passport services initialised")
        yield

    app = FastAPI(title="Cofounder Idea Passport", lifespan=lifespan)
    app.state.conversation_service = service

    # ✅ CORS Support
    origins = settings.cors_origins if settings else cors_origins_from_env()
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "OPTIONS"],
        allow_headers=["*"],
    )

    # ✅ Root route for health check
    @app.get("/")
    async def root():
        return {
            "status": "ok",
            "message": "Cofounder Idea Passport API is running",
            "version": "1.0.0",
        }

    # ✅ Routers
    app.include_router(passport_router, prefix="/api")
    app.include_router(ai_router, prefix="/api/ai")

    # ✅ Exception Handlers
    app.add_exception_handler(PassportError, passport_exception_handler)
    app.add_exception_handler(LLMServiceError, llm_exception_handler)
    app.add_exception_handler(APIError, supabase_api_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)

    return app


app = create_app()
