"""FastAPI application exposing agents, chat turns and history."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional

from fastapi import FastAPI, HTTPException, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .agents import AgentStore
from .config import load_config, resolve_api_key
from .db import Database
from .errors import CompletionError, NotFoundError, StorageError, ValidationError
from .llm import CompletionClient, create_from_config
from .memory import ChatHistory
from .persona import PersonaLibrary
from .service import ChatService
from .store import MessageStore

logger = logging.getLogger(__name__)


# -----------------------------
# Pydantic request/response
# -----------------------------
class CreateAgentRequest(BaseModel):
    name: str = Field(..., min_length=1)
    description: str = ""
    type: str = "openai"
    system_prompt: str = ""


class AgentResponse(BaseModel):
    id: int
    name: str
    description: str
    type: str
    system_prompt: str
    created_at: str


class ChatRequest(BaseModel):
    message: str = Field(..., min_length=1)


class ChatResponse(BaseModel):
    message: str


class MessageOut(BaseModel):
    role: str
    content: str


class HistoryResponse(BaseModel):
    agent_id: int
    messages: List[MessageOut]


# -----------------------------
# Utilities
# -----------------------------
def _make_database(cfg: Dict[str, Any]) -> Database:
    return Database(cfg.get("storage", {}).get("db_path") or ":memory:")


def _make_history(cfg: Dict[str, Any], db: Database) -> ChatHistory:
    max_length = int(cfg.get("history", {}).get("max_length", 10))
    return ChatHistory(MessageStore(db), max_length=max_length)


def _make_personas(cfg: Dict[str, Any]) -> PersonaLibrary:
    p_cfg = cfg.get("personas", {}) or {}
    return PersonaLibrary(p_cfg.get("dir"), p_cfg.get("inline") or [])


def build_service(
    cfg: Dict[str, Any],
    *,
    db: Optional[Database] = None,
    history: Optional[ChatHistory] = None,
    agents: Optional[AgentStore] = None,
    personas: Optional[PersonaLibrary] = None,
    client: Optional[CompletionClient] = None,
) -> ChatService:
    """Wire the process-wide services once; anything passed in is used as-is."""
    if db is None and (history is None or agents is None):
        db = _make_database(cfg)
    history = history or _make_history(cfg, db)
    agents = agents or AgentStore(db)
    personas = personas or _make_personas(cfg)
    client = client or create_from_config(cfg, resolve_api_key(cfg))
    template = cfg.get("prompt", {}).get("template")
    return ChatService(history, agents, personas, client, template=template)


# -----------------------------
# App factory
# -----------------------------
def create_app(
    config_path: Optional[str] = None,
    *,
    history: Optional[ChatHistory] = None,
    agents: Optional[AgentStore] = None,
    personas: Optional[PersonaLibrary] = None,
    client: Optional[CompletionClient] = None,
) -> FastAPI:
    cfg = load_config(config_path)

    # Only resources built here are closed on shutdown; injected ones belong to the caller.
    db = _make_database(cfg) if history is None or agents is None else None
    owns_client = client is None
    service = build_service(cfg, db=db, history=history, agents=agents, personas=personas, client=client)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        if owns_client:
            service.client.close()
        if db is not None:
            db.close()
        logger.info("Agent chat server stopped")

    cors_origins = cfg.get("server", {}).get("cors_origins", ["*"])

    app = FastAPI(title="Agent Chat Server", version="0.1.0", lifespan=lifespan)
    app.state.service = service
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(ValidationError)
    async def _validation_error(request: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(NotFoundError)
    async def _not_found(request: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(StorageError)
    async def _storage_error(request: Request, exc: StorageError) -> JSONResponse:
        logger.error("Storage failure on %s: %s", request.url.path, exc)
        return JSONResponse(status_code=500, content={"detail": "Storage error"})

    @app.get("/health")
    def health() -> Dict[str, Any]:
        return {
            "ok": True,
            "max_length": service.history.max_length,
            "model": service.client.config.model,
            "personas": service.personas.names(),
        }

    @app.post("/agents", response_model=AgentResponse, status_code=201)
    def create_agent(req: CreateAgentRequest):
        agent = service.agents.create_agent(
            req.name,
            description=req.description,
            type=req.type,
            system_prompt=req.system_prompt,
        )
        return AgentResponse(**agent.to_dict())

    @app.get("/agents/{agent_id}", response_model=AgentResponse)
    def get_agent(agent_id: int):
        return AgentResponse(**service.agents.get_agent(agent_id).to_dict())

    @app.post("/agents/{agent_id}/chat", response_model=ChatResponse)
    def chat(agent_id: int, req: ChatRequest):
        try:
            reply = service.chat(agent_id, req.message)
        except CompletionError as e:
            logger.error("Error communicating with agent %d: %s", agent_id, e)
            raise HTTPException(status_code=502, detail="Error communicating with the agent")
        return ChatResponse(message=reply)

    @app.get("/agents/{agent_id}/history", response_model=HistoryResponse)
    def get_history(agent_id: int):
        service.agents.get_agent(agent_id)
        messages = service.history.get_history(agent_id)
        return HistoryResponse(
            agent_id=agent_id,
            messages=[MessageOut(role=m.role.value, content=m.content) for m in messages],
        )

    @app.delete("/agents/{agent_id}/history", status_code=204, response_class=Response)
    def clear_history(agent_id: int):
        service.agents.get_agent(agent_id)
        service.history.clear_history(agent_id)
        return Response(status_code=204)

    return app
