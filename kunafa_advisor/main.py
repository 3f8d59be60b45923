import logging
from typing import AsyncIterator, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import Settings, get_settings
from .errors import AdvisorError, UpstreamStreamError
from .models import ChatRequest
from .upstream import UpstreamClient

logger = logging.getLogger(__name__)

app = FastAPI()

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(StarletteHTTPException)
async def http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        content={"error": str(exc.detail)},
        status_code=exc.status_code,
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    message = "; ".join(error["msg"] for error in exc.errors()) or "Invalid request"
    return JSONResponse(content={"error": message}, status_code=422)


@app.exception_handler(AdvisorError)
async def advisor_error(request: Request, exc: AdvisorError) -> JSONResponse:
    # Only reached before the first byte of a stream has been sent.
    logger.error("Error in chat relay: %s", exc)
    return JSONResponse(
        content={"error": str(exc) or "An internal server error occurred."},
        status_code=500,
    )


@app.exception_handler(Exception)
async def unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unexpected error in chat relay")
    return JSONResponse(
        content={"error": str(exc) or "An internal server error occurred."},
        status_code=500,
    )


class ChatRelay:
    """Forwards provider fragments to the HTTP client without transformation."""

    def __init__(
        self, settings: Settings, upstream: Optional[UpstreamClient] = None
    ) -> None:
        self._settings = settings
        self._upstream = upstream or UpstreamClient(settings)

    async def open(self, request: ChatRequest) -> StreamingResponse:
        """Open the upstream stream and wrap it in a chunked text response.

        The first fragment is pulled before the response starts so that an
        early upstream failure can still be reported as a JSON error.
        """
        self._settings.require_api_key()

        fragments = await self._upstream.stream(request)
        try:
            first = await anext(fragments)
        except StopAsyncIteration:
            first = None

        return StreamingResponse(
            self.relay(first, fragments),
            media_type="text/plain; charset=utf-8",
            headers={"Cache-Control": "no-cache"},
        )

    async def relay(
        self, first: Optional[str], fragments: AsyncIterator[str]
    ) -> AsyncIterator[bytes]:
        sent = 0
        try:
            if first is not None:
                sent += 1
                yield first.encode("utf-8")
            async for fragment in fragments:
                sent += 1
                yield fragment.encode("utf-8")
        except UpstreamStreamError:
            # Headers are already out; aborting the body is the only signal left.
            logger.error("Upstream failed after %d fragments, truncating response", sent)
            raise
        finally:
            await fragments.aclose()
        logger.info("Relayed %d fragments", sent)


@app.post("/api/chat")
async def chat(
    request: ChatRequest, settings: Settings = Depends(get_settings)
) -> StreamingResponse:
    """Stream the model's answer for the given conversation as plain text."""
    relay = ChatRelay(settings)
    return await relay.open(request)


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=logging.INFO)
    uvicorn.run("kunafa_advisor.main:app", host="0.0.0.0", port=7777, reload=True)
