"""Service wiring.

Builds the adapters and services once per application instance. Tests pass
their own repository, blob store, limiter or clock-controlled issuer to
``ServiceContainer.build`` instead of patching module globals.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from kitgate.adapters.rate_limit import AbstractRateLimiter, InMemoryWindowRateLimiter
from kitgate.adapters.storage import AbstractBlobStore, SupabaseBlobStore
from kitgate.adapters.store import AbstractCodeRepository, SupabaseRestRepository
from kitgate.adapters.supabase_http import SupabaseHttpClient
from kitgate.core.config import Settings, settings
from kitgate.services.admin_service import AdminService
from kitgate.services.code_validator import CodeValidator
from kitgate.services.pdf_gate import PdfGate
from kitgate.services.redemption_service import RedemptionService
from kitgate.services.tokens import PdfTokenIssuer
from kitgate.services.usage_recorder import UsageRecorder

logger = logging.getLogger(__name__)


def create_token_issuer(cfg: Settings = settings) -> PdfTokenIssuer:
    """Token issuer from settings; the service key signs tokens when no secret is set."""

    secret = cfg.token.secret
    if not secret:
        logger.warning("token.secret_fallback", extra={"source": "service_role_key"})
        secret = cfg.supabase.service_role_key
    return PdfTokenIssuer(
        secret,
        algorithm=cfg.token.algorithm,
        ttl_seconds=cfg.token.ttl_seconds,
    )


def create_rate_limiter(cfg: Settings = settings) -> AbstractRateLimiter:
    return InMemoryWindowRateLimiter(
        limit=cfg.app.rate_limit_requests,
        window_seconds=cfg.app.rate_limit_window_seconds,
    )


@dataclass
class ServiceContainer:
    """Everything the routes need, built once per app."""

    repository: AbstractCodeRepository
    blob_store: AbstractBlobStore
    rate_limiter: AbstractRateLimiter
    issuer: PdfTokenIssuer
    redemption: RedemptionService
    pdf_gate: PdfGate
    admin: AdminService
    http: SupabaseHttpClient | None = None

    @classmethod
    def build(
        cls,
        *,
        repository: AbstractCodeRepository,
        blob_store: AbstractBlobStore,
        rate_limiter: AbstractRateLimiter | None = None,
        issuer: PdfTokenIssuer | None = None,
        http: SupabaseHttpClient | None = None,
        cfg: Settings = settings,
    ) -> "ServiceContainer":
        issuer = issuer or create_token_issuer(cfg)
        return cls(
            repository=repository,
            blob_store=blob_store,
            rate_limiter=rate_limiter or create_rate_limiter(cfg),
            issuer=issuer,
            redemption=RedemptionService(
                validator=CodeValidator(repository),
                recorder=UsageRecorder(repository),
                issuer=issuer,
            ),
            pdf_gate=PdfGate(issuer, blob_store, cfg.app.kit_documents),
            admin=AdminService(repository, max_generate_count=cfg.app.max_generate_count),
            http=http,
        )

    @classmethod
    def from_settings(cls, cfg: Settings = settings) -> "ServiceContainer":
        """Production wiring against the configured backend project."""

        http = SupabaseHttpClient(
            base_url=cfg.supabase.url,
            service_key=cfg.supabase.service_role_key,
            timeout_seconds=cfg.supabase.timeout_seconds,
        )
        return cls.build(
            repository=SupabaseRestRepository(http, page_size=cfg.supabase.page_size),
            blob_store=SupabaseBlobStore(http, bucket=cfg.supabase.storage_bucket),
            http=http,
            cfg=cfg,
        )

    async def aclose(self) -> None:
        await self.rate_limiter.stop_sweeper()
        if self.http is not None:
            await self.http.aclose()
