"""Unified FastAPI server exposing the chat session, push updates and analysis."""

from __future__ import annotations

import argparse
import logging
import os
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Request, WebSocket
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
import uvicorn

from analysis_module import AnalysisConfig, AnalysisLLMConfig, ConversationAnalysisService
from analysis_module.llm_client import ChatLLMClient
from embedding_module import EmbeddingClient, EmbeddingConfig, EmbeddingStore, StoreConfig, build_store
from embedding_module.utils import setup_logging
from session_module import NotificationHub, SessionConfig, SessionController
from session_module.client import ChatClient, load_client_factory
from session_module.errors import BridgeError, NotFound
from session_module.pairing import render_pairing_artifact
from session_module.queries import ChatQueries

logger = logging.getLogger(__name__)


# ---------- Configuration ----------
@dataclass
class BridgeConfig:
    session: SessionConfig = field(default_factory=SessionConfig)
    embedding: EmbeddingConfig = field(default_factory=EmbeddingConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)


# ---------- Response Models ----------
class StatusResponse(BaseModel):
    authenticated: bool


class MessageResponse(BaseModel):
    message: str


class ConversationItem(BaseModel):
    id: str
    name: str


class ChatMessageItem(BaseModel):
    sender: str = Field(..., alias="from")
    body: str
    timestamp: Optional[int] = None


class MessagesResponse(BaseModel):
    chatId: str
    messages: List[ChatMessageItem] = Field(default_factory=list)


class EmbeddingResponse(BaseModel):
    chatId: str


class ChatStatsResponse(BaseModel):
    chatId: str
    analysis: str


# ---------- FastAPI Factory ----------
def create_app(
    chat_client: ChatClient,
    config: Optional[BridgeConfig] = None,
    *,
    store: Optional[EmbeddingStore] = None,
    embedding_client: Optional[EmbeddingClient] = None,
    llm_client: Optional[ChatLLMClient] = None,
    renderer: Callable[[str], str] = render_pairing_artifact,
    log_dir: Optional[str] = None,
) -> FastAPI:
    if log_dir:
        setup_logging(log_dir, logging.INFO)

    config = config or BridgeConfig()
    controller = SessionController(
        chat_client,
        renderer=renderer,
        client_timeout=config.session.client_timeout,
    )
    hub = NotificationHub(controller.state, welcome_message=config.session.welcome_message)
    controller.add_listener(hub.publish_transition)
    queries = ChatQueries(controller, recent_messages_limit=config.session.recent_messages_limit)
    analysis = ConversationAnalysisService(
        controller,
        embedding_client or EmbeddingClient(config.embedding),
        store if store is not None else build_store(config.store),
        llm_client=llm_client,
        config=config.analysis,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        try:
            await controller.start()
        except BridgeError:
            logger.exception("Messaging client failed to start; waiting for lifecycle events")
        yield
        logger.info("Shutting down (%d push subscriber(s) connected)", hub.subscriber_count)

    app = FastAPI(title="Chat Session Bridge", version="0.1.0", lifespan=lifespan)
    app.state.controller = controller
    app.state.hub = hub
    app.state.queries = queries
    app.state.analysis = analysis

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(BridgeError)
    async def bridge_error_handler(request: Request, exc: BridgeError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": {"code": exc.code, "message": exc.message}},
        )

    @app.get("/health")
    async def health() -> Dict[str, str]:
        return {"status": "ok"}

    @app.get("/qr")
    async def qr() -> Dict[str, Any]:
        state = app.state.controller.state
        if state.pairing_artifact:
            return {"pairingArtifact": state.pairing_artifact}
        if state.authenticated:
            return {"authenticated": True}
        raise NotFound("QR code not available.")

    @app.get("/status", response_model=StatusResponse)
    async def status() -> StatusResponse:
        return StatusResponse(authenticated=app.state.controller.authenticated)

    @app.post("/logout", response_model=MessageResponse)
    async def logout() -> MessageResponse:
        logger.info("Logout requested")
        await app.state.controller.logout()
        return MessageResponse(message="Session closed. Scan the new QR code to reconnect.")

    @app.get("/conversations", response_model=List[ConversationItem])
    async def conversations() -> List[Dict[str, str]]:
        chats = await app.state.queries.list_conversations()
        return [chat.to_payload() for chat in chats]

    @app.get("/messages/{chat_id}", response_model=MessagesResponse)
    async def messages(chat_id: str) -> Dict[str, Any]:
        logger.info("Fetching recent messages for chat %s", chat_id)
        items = await app.state.queries.recent_messages(chat_id)
        return {"chatId": chat_id, "messages": [item.to_payload() for item in items]}

    @app.post("/generate-embedding/{chat_id}", response_model=EmbeddingResponse)
    async def generate_embedding(chat_id: str) -> EmbeddingResponse:
        logger.info("Received embedding request for chat %s", chat_id)
        await app.state.analysis.embed_chat(chat_id)
        return EmbeddingResponse(chatId=chat_id)

    @app.get("/chat-stats/{chat_id}", response_model=ChatStatsResponse)
    async def chat_stats(chat_id: str) -> ChatStatsResponse:
        logger.info("Received analysis request for chat %s", chat_id)
        result = await app.state.analysis.analyze_chat(chat_id)
        return ChatStatsResponse(chatId=result.chat_id, analysis=result.analysis)

    @app.websocket("/ws")
    async def push_channel(websocket: WebSocket) -> None:
        await app.state.hub.serve(websocket)

    return app


# ---------- CLI ----------
def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    env = os.environ.get
    parser = argparse.ArgumentParser(description="Run the chat session bridge server.")
    parser.add_argument("--host", default=env("HOST", "0.0.0.0"), help="Host interface to bind.")
    parser.add_argument("--port", type=int, default=int(env("PORT", "3000")), help="Port to bind.")
    parser.add_argument("--log_dir", default=env("LOG_DIR", "./logs"), help="Directory for application logs.")
    parser.add_argument(
        "--client_factory",
        default=env("CHAT_CLIENT_FACTORY"),
        help="Messaging client factory as 'module:callable'.",
    )
    parser.add_argument("--client_timeout", type=float, default=60.0, help="Timeout for messaging client calls (seconds).")
    parser.add_argument("--api_key", default=env("OPENAI_API_KEY"), help="API key for the model endpoints.")
    parser.add_argument(
        "--embedding_endpoint", default="https://api.openai.com/v1/embeddings", help="Embedding endpoint."
    )
    parser.add_argument("--embedding_model", default="text-embedding-3-small", help="Embedding model name.")
    parser.add_argument(
        "--llm_endpoint", default="https://api.openai.com/v1/chat/completions", help="Completion endpoint."
    )
    parser.add_argument("--llm_model", default="gpt-4o-mini", help="Model name for completions.")
    parser.add_argument("--request_timeout", type=int, default=120, help="Timeout for model calls (seconds).")
    parser.add_argument("--message_window", type=int, default=100, help="Messages embedded per request.")
    parser.add_argument(
        "--store_backend",
        choices=["memory", "local", "supabase"],
        default=env("EMBEDDING_STORE", "supabase" if env("SUPABASE_URL") else "memory"),
        help="Where embeddings are persisted.",
    )
    parser.add_argument("--store_dir", default=env("EMBEDDING_STORE_DIR"), help="Directory for the local store.")
    parser.add_argument("--supabase_url", default=env("SUPABASE_URL"), help="Supabase project URL.")
    parser.add_argument("--supabase_key", default=env("SUPABASE_KEY"), help="Supabase API key.")
    parser.add_argument(
        "--strict_persistence",
        action="store_true",
        help="Fail embedding requests when the embedding cannot be saved.",
    )
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> BridgeConfig:
    return BridgeConfig(
        session=SessionConfig(client_factory=args.client_factory, client_timeout=args.client_timeout),
        embedding=EmbeddingConfig(
            endpoint=args.embedding_endpoint,
            model=args.embedding_model,
            api_key=args.api_key,
            request_timeout=args.request_timeout,
        ),
        store=StoreConfig(
            backend=args.store_backend,
            store_dir=args.store_dir,
            supabase_url=args.supabase_url,
            supabase_key=args.supabase_key,
        ),
        analysis=AnalysisConfig(
            llm=AnalysisLLMConfig(
                endpoint=args.llm_endpoint,
                model=args.llm_model,
                api_key=args.api_key,
                request_timeout=args.request_timeout,
            ),
            message_window=args.message_window,
            strict_persistence=args.strict_persistence,
        ),
    )


def main(argv: Optional[list[str]] = None) -> None:
    load_dotenv()
    args = parse_args(argv)
    if not args.client_factory:
        raise SystemExit("A messaging client factory is required (--client_factory or CHAT_CLIENT_FACTORY).")

    config = build_config(args)
    chat_client = load_client_factory(args.client_factory)()
    app = create_app(chat_client, config, log_dir=args.log_dir)
    logger.info("Starting chat session bridge on %s:%d", args.host, args.port)
    uvicorn.run(app, host=args.host, port=args.port)


if __name__ == "__main__":
    main()
