"""Token-gated kit PDF delivery."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse, Response

from kitgate.api.dependencies import get_pdf_gate
from kitgate.core.config import settings
from kitgate.core.errors import StoreAppError, TokenAppError, ValidationAppError
from kitgate.services.pdf_gate import DEFAULT_ORIENTATION, PdfGate

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Access"])


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@router.get(
    "/api/pdf/{kit_type}",
    response_class=Response,
    responses={
        200: {"content": {"application/pdf": {}}, "description": "The kit document."},
        400: {"description": "Unknown kit type or orientation."},
        401: {"description": "Missing, invalid, expired or mismatched token."},
        500: {"description": "The document could not be loaded."},
    },
)
async def get_kit_pdf(
    kit_type: str,
    token: str | None = Query(default=None, description="Token from the redemption endpoint."),
    orientation: str = Query(default=DEFAULT_ORIENTATION, description="hor or ver"),
    gate: PdfGate = Depends(get_pdf_gate),
) -> Response:
    """Return the kit PDF inline when ``token`` was issued for ``kit_type``."""
    # ?orientation= with no value falls back to the default layout
    orientation = orientation or DEFAULT_ORIENTATION
    try:
        document = await gate.fetch(kit_type, orientation, token)
    except ValidationAppError as exc:
        return _error(exc.message, status.HTTP_400_BAD_REQUEST)
    except TokenAppError as exc:
        return _error(exc.message, status.HTTP_401_UNAUTHORIZED)
    except StoreAppError as exc:
        logger.error(
            "pdf.load_failed",
            extra={"kit_type": kit_type, "orientation": orientation, "error_code": exc.code},
        )
        return _error("Could not load PDF", status.HTTP_500_INTERNAL_SERVER_ERROR)
    except Exception:
        logger.exception("pdf.unexpected_error", extra={"kit_type": kit_type})
        return _error("Internal server error", status.HTTP_500_INTERNAL_SERVER_ERROR)

    return Response(
        content=document.content,
        media_type="application/pdf",
        headers={
            "Content-Disposition": f'inline; filename="{document.filename}"',
            "Cache-Control": f"private, max-age={settings.app.pdf_cache_max_age}",
        },
    )
