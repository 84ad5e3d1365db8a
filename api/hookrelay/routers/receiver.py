from fastapi import APIRouter, HTTPException, Request, Response
from starlette.requests import ClientDisconnect

from hookrelay.channels.dispatcher import Dispatcher
from hookrelay.errors import ClientInputError
from hookrelay.middleware import DEFAULT_MAX_BODY_SIZE

router = APIRouter(tags=["receiver"])


def get_dispatcher(request: Request) -> Dispatcher:
    return request.app.state.dispatcher


async def read_body(request: Request, max_body_size: int) -> bytes:
    """Read the body, enforcing the size limit on streamed (chunked) uploads too."""
    chunks = []
    size = 0
    try:
        async for chunk in request.stream():
            size += len(chunk)
            if size > max_body_size:
                raise HTTPException(
                    status_code=413,
                    detail=f"Request body too large. Max size is {max_body_size} bytes.",
                )
            chunks.append(chunk)
    except ClientDisconnect as e:
        raise ClientInputError("client disconnected while sending the body") from e
    return b"".join(chunks)


# ---------------------------------------------------------------------------
# Public: receive events on any path with any method
# ---------------------------------------------------------------------------


async def receive_event(request: Request) -> Response:
    max_body_size = getattr(request.app.state, "max_body_size", DEFAULT_MAX_BODY_SIZE)
    body = await read_body(request, max_body_size)

    # ClientInputError propagates to the app's 400 handler
    status = get_dispatcher(request).handle(request.url.path, body)
    return Response(status_code=status)


# methods=None: every verb is accepted, including TRACE and extension methods
router.add_route("/{path:path}", receive_event, methods=None, include_in_schema=False)
