import asyncio
import os

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse

from api.models import (
    ChatConversationResponse,
    ChatMessageRequest,
    ChatMessageResponse,
    LogResetResponse,
    ReferenceListResponse,
    StartersResponse,
)
from assistant.config import API_TITLE, API_VERSION
from assistant.events import log_api_event, reset_event_log
from assistant.orchestrator import Orchestrator, create_orchestrator
from assistant.prompts import CONVERSATION_STARTERS, ERROR_TURN_TEMPLATE
from assistant.store import ALL_TOPICS

app = FastAPI(title=API_TITLE, version=API_VERSION)

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)

EVENT_LOG_RESET_ON_STARTUP = os.getenv("EVENT_LOG_RESET_ON_STARTUP", "1") == "1"
ALLOW_LOG_RESET = os.getenv("ALLOW_LOG_RESET", "1") == "1"


@app.on_event("startup")
def _startup() -> None:
    if EVENT_LOG_RESET_ON_STARTUP:
        reset_event_log("startup")
    # A missing credential raises ConfigError here and aborts startup.
    app.state.orchestrator = create_orchestrator()


@app.on_event("shutdown")
async def _shutdown() -> None:
    orchestrator = getattr(app.state, "orchestrator", None)
    if orchestrator is None:
        return
    await orchestrator.wait_for_enrichment()
    await orchestrator.session.aclose()


@app.exception_handler(HTTPException)
def handle_http_exception(_request: Request, exc: HTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": {"code": "http_error", "message": str(exc.detail)}},
        headers=exc.headers,
    )


@app.exception_handler(RequestValidationError)
def handle_validation_exception(_request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=422,
        content={
            "error": {
                "code": "validation_error",
                "message": "invalid request",
                "details": exc.errors(),
            }
        },
    )


@app.post("/v1/logs/reset", response_model=LogResetResponse)
def reset_logs():
    if not ALLOW_LOG_RESET:
        raise HTTPException(status_code=403, detail="log reset disabled")
    reset_event_log("client")
    log_api_event("api_log_reset", {"client": "app"})
    return {"reset": True}


def get_orchestrator(request: Request) -> Orchestrator:
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        raise HTTPException(status_code=503, detail="chat session unavailable")
    return orchestrator


def _check_submittable(orchestrator: Orchestrator, payload: ChatMessageRequest) -> None:
    if not payload.prompt.strip():
        raise HTTPException(status_code=400, detail="prompt required")
    if orchestrator.is_loading:
        raise HTTPException(status_code=409, detail="message already in flight")


@app.get("/v1/chat/conversation", response_model=ChatConversationResponse)
def get_conversation(orchestrator: Orchestrator = Depends(get_orchestrator)):
    return {
        "session_id": orchestrator.session_id,
        "state": orchestrator.state.value,
        "loading": orchestrator.is_loading,
        "error": orchestrator.last_error,
        "pending_enrichment": orchestrator.pending_enrichment,
        "turns": list(orchestrator.store.turns),
    }


@app.post("/v1/chat/messages", response_model=ChatMessageResponse)
async def post_message(
    payload: ChatMessageRequest,
    orchestrator: Orchestrator = Depends(get_orchestrator),
):
    _check_submittable(orchestrator, payload)
    result = await orchestrator.submit(payload.prompt)
    if not result.accepted:
        raise HTTPException(status_code=409, detail="message already in flight")
    log_api_event("api_chat_message", {"error": bool(result.error), "chars": len(result.content)})
    return {"turn_id": result.turn_id, "content": result.content, "error": result.error}


@app.post("/v1/chat/messages/stream")
async def stream_message(
    payload: ChatMessageRequest,
    orchestrator: Orchestrator = Depends(get_orchestrator),
):
    _check_submittable(orchestrator, payload)
    if not orchestrator.begin(payload.prompt):
        raise HTTPException(status_code=409, detail="message already in flight")
    queue: asyncio.Queue = asyncio.Queue()

    async def run():
        try:
            return await orchestrator.complete(payload.prompt, on_chunk=queue.put_nowait)
        finally:
            queue.put_nowait(None)

    task = asyncio.create_task(run())

    async def body():
        while True:
            chunk = await queue.get()
            if chunk is None:
                break
            yield chunk
        result = await task
        if result.error:
            yield "\n" + ERROR_TURN_TEMPLATE.format(message=result.error)

    return StreamingResponse(body(), media_type="text/plain; charset=utf-8")


@app.get("/v1/chat/references", response_model=ReferenceListResponse)
def list_references(
    topic: str = Query(ALL_TOPICS),
    q: str = Query(""),
    orchestrator: Orchestrator = Depends(get_orchestrator),
):
    store = orchestrator.store
    items = store.filter_references(topic=topic, query=q)
    return {"topics": store.topics(), "total": len(items), "items": items}


@app.get("/v1/chat/starters", response_model=StartersResponse)
def list_starters(orchestrator: Orchestrator = Depends(get_orchestrator)):
    show = len(orchestrator.store.turns) == 1 and not orchestrator.is_loading
    return {"show": show, "items": CONVERSATION_STARTERS}
