"""FastAPI application exposing the swarm, the render callback and the chat relay."""

import logging
from contextlib import asynccontextmanager
from typing import Any, Optional

import openai
from fastapi import Depends, FastAPI, File, Form, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse

from storyboard_swarm import __version__
from storyboard_swarm.agents.chat_relay import ChatRelayAgent, ChatRelayInput, ChatValidationError, UpstreamError
from storyboard_swarm.agents.persistence import SupabaseFactStore
from storyboard_swarm.agents.render_callback import RenderCallbackAgent, RenderCallbackError, RenderCallbackInput
from storyboard_swarm.config import Settings, get_settings
from storyboard_swarm.orchestrator.logger import configure_logging
from storyboard_swarm.orchestrator.pipeline import INPUT_ERROR_CODES, Orchestrator
from storyboard_swarm.schemas.render import RenderCallbackPayload
from storyboard_swarm.schemas.storyboard import SwarmResponse

logger = logging.getLogger(__name__)

GENERIC_CHAT_ERROR = "Something went wrong. Please try again."
NOT_CONFIGURED = "Service is not configured"


def get_orchestrator(request: Request) -> Orchestrator:
    state = request.app.state
    if state.orchestrator is None:
        state.orchestrator = Orchestrator(settings=state.settings)
    return state.orchestrator


def get_render_agent(request: Request) -> Optional[RenderCallbackAgent]:
    state = request.app.state
    if state.render_agent is None and state.settings.store_configured:
        state.render_agent = RenderCallbackAgent(
            SupabaseFactStore(
                url=state.settings.supabase_url,
                service_key=state.settings.supabase_service_role_key,
                table=state.settings.facts_table,
                bucket=state.settings.videos_bucket
            )
        )
    return state.render_agent


def get_chat_relay(request: Request) -> Optional[ChatRelayAgent]:
    state = request.app.state
    if state.chat_relay is None and state.settings.gateway_configured:
        client = openai.AsyncOpenAI(
            api_key=state.settings.ai_gateway_api_key,
            base_url=state.settings.ai_gateway_url,
            timeout=state.settings.request_timeout_seconds,
            max_retries=0
        )
        state.chat_relay = ChatRelayAgent(client, state.settings.ai_model)
    return state.chat_relay


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the application.

    Components are created on first use and cached on ``app.state``; tests
    replace them through ``app.dependency_overrides``.
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level.upper())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        if app.state.orchestrator is not None:
            await app.state.orchestrator.aclose()
        if app.state.render_agent is not None:
            await app.state.render_agent.store.aclose()

    app = FastAPI(title="Storyboard Swarm API", version=__version__, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"]
    )

    app.state.settings = settings
    app.state.orchestrator = None
    app.state.render_agent = None
    app.state.chat_relay = None

    @app.get("/health")
    def health_check():
        return {"status": "ok", "version": __version__}

    @app.post("/analyze-multidimensional", response_model=SwarmResponse)
    async def analyze_multidimensional(
        pdf: Optional[UploadFile] = File(None),
        user_id: Optional[str] = Form(None),
        project_id: Optional[str] = Form(None),
        orchestrator: Orchestrator = Depends(get_orchestrator)
    ):
        document_bytes = await pdf.read() if pdf is not None else None
        document_name = pdf.filename if pdf is not None else None
        logger.info(
            f"New swarm job | pdf={document_name} | user_id={user_id} | "
            f"size={len(document_bytes) if document_bytes else 0}"
        )

        response = await orchestrator.run(document_bytes, document_name, user_id, project_id)
        if response.error is not None:
            status_code = 400 if response.error_code in INPUT_ERROR_CODES else 500
            return JSONResponse(status_code=status_code, content=response.model_dump(mode="json"))
        return response

    @app.post("/render-callback")
    async def render_callback(
        request: Request,
        agent: Optional[RenderCallbackAgent] = Depends(get_render_agent)
    ):
        try:
            if agent is None:
                raise RenderCallbackError(NOT_CONFIGURED)
            payload = RenderCallbackPayload.model_validate(await request.json())
            result = await agent.execute(RenderCallbackInput(payload))
        except (RenderCallbackError, ValueError) as e:
            logger.error(f"Render callback error: {e}")
            return JSONResponse(status_code=500, content={"success": False, "error": str(e)})
        return result.model_dump()

    @app.post("/chat")
    async def chat(
        request: Request,
        relay: Optional[ChatRelayAgent] = Depends(get_chat_relay)
    ):
        body: Any
        try:
            body = await request.json()
        except ValueError:
            body = None

        try:
            if relay is None:
                raise RuntimeError("AI gateway API key is not configured")
            stream = await relay.execute(ChatRelayInput(body))
        except ChatValidationError as e:
            logger.info(f"Rejected chat request: {e}")
            return JSONResponse(status_code=400, content={"error": str(e)})
        except UpstreamError as e:
            return JSONResponse(status_code=e.status_code, content={"error": e.message})
        except Exception as e:
            logger.error(f"Chat function error: {e}", exc_info=True)
            return JSONResponse(status_code=500, content={"error": GENERIC_CHAT_ERROR})

        return StreamingResponse(stream, media_type="text/event-stream")

    return app


app = create_app()
