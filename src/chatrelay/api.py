"""FastAPI application and routes for the chat relay."""

import json
import logging
from pathlib import Path

import httpx
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, StreamingResponse
from fastapi.staticfiles import StaticFiles
from pydantic import ValidationError

from .config import config, relay_logger, TIMEOUT, HOST, PORT, CORS_ORIGINS
from .models import ChatRequest
from .providers import resolve_provider, build_upstream_payload, build_upstream_headers
from .streaming import relay_tokens
from .utils import error_response

logger = logging.getLogger(__name__)

STATIC_DIR = Path(__file__).parent / "static"

app = FastAPI(title="Chat Relay")

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")

STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}


@app.post("/api/chat")
async def relay_chat(request: Request) -> Response:
    """
    Relay a conversation to the selected provider and stream back raw tokens:
    - Picks upstream URL, key and model from the provider name
    - Forwards upstream error responses verbatim
    - Strips SSE framing so the client receives only text deltas
    """
    body = await request.body()

    try:
        request_data = json.loads(body)
    except json.JSONDecodeError:
        return error_response("Invalid request body.", 400)

    if not isinstance(request_data, dict):
        return error_response("Invalid request body.", 400)

    provider = resolve_provider(request_data.get("provider"), config)
    if provider is None:
        return error_response("Invalid provider specified.", 400)

    try:
        ChatRequest(**request_data)
    except ValidationError as e:
        logger.warning(f"Rejected chat request: {str(e)}")
        return error_response("Invalid request body.", 400)

    messages = request_data["messages"]

    relay_logger.info(
        "chat request",
        extra={
            "provider": provider.name,
            "model": provider.model,
            "messageCount": len(messages),
        },
    )

    client = httpx.AsyncClient(timeout=TIMEOUT, follow_redirects=True)
    try:
        upstream_request = client.build_request(
            "POST",
            provider.url,
            json=build_upstream_payload(provider, messages),
            headers=build_upstream_headers(provider),
        )
        response = await client.send(upstream_request, stream=True)
    except Exception as e:
        await client.aclose()
        relay_logger.critical(
            "upstream connection failed", exc_info=True, extra={"error": str(e)}
        )
        return error_response("Failed to connect to AI service.", 500)

    if not 200 <= response.status_code < 300:
        try:
            error_body = await response.aread()
        except Exception as e:
            relay_logger.critical(
                "upstream error body unreadable", exc_info=True, extra={"error": str(e)}
            )
            return error_response("Failed to connect to AI service.", 500)
        finally:
            await response.aclose()
            await client.aclose()

        relay_logger.error(
            "upstream error",
            extra={
                "provider": provider.name,
                "status": response.status_code,
                "body": error_body.decode("utf-8", errors="replace"),
            },
        )
        return Response(
            content=error_body,
            status_code=response.status_code,
            media_type=response.headers.get("content-type", "text/plain"),
        )

    async def token_stream():
        try:
            async for token in relay_tokens(response.aiter_bytes()):
                yield token
        except Exception as e:
            # Headers are already sent, so the stream just ends here
            relay_logger.critical(
                "upstream stream failed", exc_info=True, extra={"error": str(e)}
            )
        finally:
            await response.aclose()
            await client.aclose()

    return StreamingResponse(
        token_stream(),
        status_code=200,
        headers=STREAM_HEADERS,
        media_type="text/event-stream",
    )


@app.get("/")
async def index():
    """Browser chat client"""
    return FileResponse(str(STATIC_DIR / "index.html"))


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy"}


def main():
    import uvicorn
    uvicorn.run(app, host=HOST, port=PORT)


if __name__ == "__main__":
    main()
