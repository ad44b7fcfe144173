"""PDF gate: serves a kit document only to holders of a matching access token."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Mapping

from kitgate.adapters.storage.base import AbstractBlobStore
from kitgate.core.errors import StoreAppError, TokenAppError, ValidationAppError
from kitgate.services.tokens import PdfAccessClaims, PdfTokenIssuer

logger = logging.getLogger(__name__)

ORIENTATIONS = ("hor", "ver")
DEFAULT_ORIENTATION = "hor"
PDF_SIGNATURE = b"%PDF-"


@dataclass(frozen=True)
class KitDocument:
    """A fetched kit PDF ready to be returned inline."""

    kit_type: str
    orientation: str
    content: bytes

    @property
    def filename(self) -> str:
        return f"documento-{self.kit_type}.pdf"


class PdfGate:
    """Validates PDF requests and loads the stored documents.

    Args:
        issuer: Token issuer used to verify access tokens.
        blob_store: Store holding the documents.
        kit_documents: Storage path per kit slug and orientation.
    """

    def __init__(
        self,
        issuer: PdfTokenIssuer,
        blob_store: AbstractBlobStore,
        kit_documents: Mapping[str, Mapping[str, str]],
    ) -> None:
        self.issuer = issuer
        self.blob_store = blob_store
        self.kit_documents = kit_documents

    def resolve_path(self, kit_type: str, orientation: str) -> str:
        """Storage path for a kit and orientation.

        Raises:
            ValidationAppError: Unknown kit type or orientation.
        """
        paths = self.kit_documents.get(kit_type)
        if not paths:
            raise ValidationAppError(code="invalid_kit_type", message="Invalid kit type")
        if orientation not in ORIENTATIONS or orientation not in paths:
            raise ValidationAppError(code="invalid_orientation", message="Invalid orientation")
        return paths[orientation]

    def authorize(self, token: str | None, kit_type: str) -> PdfAccessClaims:
        """Verify ``token`` and that it was issued for ``kit_type``.

        Raises:
            TokenAppError: Missing, invalid, expired or mismatched token; the
                message is the same in every case.
        """
        if not token:
            logger.info("pdf.rejected", extra={"reason": "missing_token", "kit_type": kit_type})
            raise TokenAppError(code="invalid_token", message="Invalid or expired token")

        claims = self.issuer.verify(token)
        if claims.customer_type != kit_type:
            logger.warning(
                "pdf.rejected",
                extra={
                    "reason": "kit_mismatch",
                    "kit_type": kit_type,
                    "token_customer_type": claims.customer_type,
                    "code_id": claims.code_id,
                },
            )
            raise TokenAppError(code="invalid_token", message="Invalid or expired token")
        return claims

    async def fetch(self, kit_type: str, orientation: str, token: str | None) -> KitDocument:
        """Run every gate check then download the document.

        Raises:
            ValidationAppError: Bad kit type or orientation (HTTP 400).
            TokenAppError: Token rejected (HTTP 401).
            StoreAppError: Download failed or the object is not a PDF (HTTP 500).
        """
        path = self.resolve_path(kit_type, orientation)
        claims = self.authorize(token, kit_type)

        content = await self.blob_store.download(path)
        if not content.startswith(PDF_SIGNATURE):
            logger.error(
                "pdf.invalid_document",
                extra={"kit_type": kit_type, "orientation": orientation, "size": len(content)},
            )
            raise StoreAppError(code="invalid_document", message="Could not load PDF")

        logger.info(
            "pdf.served",
            extra={
                "kit_type": kit_type,
                "orientation": orientation,
                "code_id": claims.code_id,
                "size": len(content),
            },
        )
        return KitDocument(kit_type=kit_type, orientation=orientation, content=content)
