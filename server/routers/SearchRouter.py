"""Search router: ranked similarity search and index refresh."""

from fastapi import APIRouter, Body, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from shared.dependencies.auth import verify_api_key
from shared.models.errors import InvalidFilterError
from shared.models.refresh import RefreshRequest
from shared.models.search import SearchRequest

router = APIRouter()


@router.post(
    "/search",
    dependencies=[Depends(verify_api_key)],
    tags=["Search"],
)
async def handle_search(request: Request, body: SearchRequest) -> JSONResponse:
    """Rank stored documents against a natural language query.

    Args:
        request (Request): The incoming FastAPI request (carries app state).
        body (SearchRequest): Query text, optional filters, limit and offset.

    Returns:
        JSONResponse: Page of ranked results plus the total match count.

    Raises:
        HTTPException: 400 if a filter value is malformed.
    """
    request.app.state.logging.info("Search received: query=%r", body.query[:80])
    try:
        result = await request.app.state.backend.do_search(body)
    except InvalidFilterError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return JSONResponse(content=result.model_dump(exclude_none=True))


@router.post(
    "/refresh",
    dependencies=[Depends(verify_api_key)],
    tags=["Search"],
)
async def handle_refresh(request: Request, body: RefreshRequest | None = Body(default=None)) -> JSONResponse:
    """Re-derive embeddings for all documents matching the optional filter.

    Always answers 200 with a status object, also when some documents failed.
    """
    body = body or RefreshRequest()
    request.app.state.logging.info(
        "Refresh received: application=%r source=%r owner=%r", body.application, body.source, body.owner
    )
    result = await request.app.state.backend.do_refresh(body)
    return JSONResponse(content=result.model_dump(exclude_none=True))
