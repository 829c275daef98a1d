"""Document router: embedding and retrieval of single documents."""

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from shared.dependencies.auth import verify_api_key
from shared.models.document import EmbedRequest
from shared.models.errors import DocumentNotFoundError

router = APIRouter()


@router.post(
    "/embed",
    dependencies=[Depends(verify_api_key)],
    tags=["Documents"],
)
async def handle_embed(request: Request, body: EmbedRequest) -> JSONResponse:
    """Embed a document, overwriting any stored document with the same id.

    A vectorization failure is reported in the body (status "error"),
    not as an HTTP error.

    Args:
        request (Request): The incoming FastAPI request (carries app state).
        body (EmbedRequest): Document id, content and optional metadata.

    Returns:
        JSONResponse: The EmbedResponse.
    """
    request.app.state.logging.info("Embed received: id=%r (%d chars)", body.id, len(body.content))
    result = await request.app.state.backend.do_embed(body)
    return JSONResponse(content=result.model_dump(exclude_none=True))


@router.get(
    "/item/{document_id}",
    dependencies=[Depends(verify_api_key)],
    tags=["Documents"],
)
async def handle_get_item(request: Request, document_id: str) -> JSONResponse:
    """Return a stored document by id.

    Raises:
        HTTPException: 404 if the document does not exist.
    """
    try:
        document = await request.app.state.backend.do_get_item(document_id)
    except DocumentNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    return JSONResponse(content=document.model_dump(exclude_none=True))
