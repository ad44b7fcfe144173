from __future__ import annotations

from fastapi import Request

from kitgate.core.container import ServiceContainer
from kitgate.services.admin_service import AdminService
from kitgate.services.pdf_gate import PdfGate
from kitgate.services.redemption_service import RedemptionService


def get_services(request: Request) -> ServiceContainer:
    return request.app.state.services


def get_redemption_service(request: Request) -> RedemptionService:
    return get_services(request).redemption


def get_pdf_gate(request: Request) -> PdfGate:
    return get_services(request).pdf_gate


def get_admin_service(request: Request) -> AdminService:
    return get_services(request).admin
