"""Tests for the token-gated PDF endpoint."""

from unittest.mock import Mock

import pytest

from conftest import PDF_BYTES, TEST_TOKEN_SECRET
from kitgate.core.errors import StoreAppError
from kitgate.services.tokens import PdfTokenIssuer


@pytest.fixture
def token_for(issuer):
    def _issue(kit_type: str, code_id: str = "code-1") -> str:
        return issuer.issue(code_id, kit_type)

    return _issue


def test_serves_pdf_inline(client, blob_store, token_for) -> None:
    resp = client.get("/api/pdf/oro", params={"token": token_for("oro")})

    assert resp.status_code == 200
    assert resp.content == PDF_BYTES
    assert resp.headers["content-type"] == "application/pdf"
    assert resp.headers["content-disposition"] == 'inline; filename="documento-oro.pdf"'
    assert resp.headers["cache-control"] == "private, max-age=600"
    assert blob_store.downloads == ["oro/camp_q1_26_v1.1_oro_hor.pdf"]


def test_one_token_serves_both_orientations(client, blob_store, token_for) -> None:
    token = token_for("zafiro")

    hor = client.get("/api/pdf/zafiro", params={"token": token, "orientation": "hor"})
    ver = client.get("/api/pdf/zafiro", params={"token": token, "orientation": "ver"})

    assert hor.status_code == 200
    assert ver.status_code == 200
    assert blob_store.downloads == [
        "zafiro/camp_q1_26_v1.1_zafiro_hor.pdf",
        "zafiro/camp_q1_26_v1.1_zafiro_ver.pdf",
    ]


def test_token_for_other_kit_is_unauthorized(client, blob_store, token_for) -> None:
    resp = client.get("/api/pdf/zafiro", params={"token": token_for("startup")})

    assert resp.status_code == 401
    assert resp.json() == {"error": "Invalid or expired token"}
    assert blob_store.downloads == []


def test_missing_token_is_unauthorized(client) -> None:
    resp = client.get("/api/pdf/oro")

    assert resp.status_code == 401
    assert resp.json() == {"error": "Invalid or expired token"}


def test_expired_token_gets_same_message(app, services) -> None:
    from fastapi.testclient import TestClient

    clock = Mock(return_value=1_700_000_000.0)
    services.pdf_gate.issuer = PdfTokenIssuer(TEST_TOKEN_SECRET, clock=clock)
    token = services.pdf_gate.issuer.issue("code-1", "oro")
    clock.return_value = 1_700_000_601.0

    resp = TestClient(app).get("/api/pdf/oro", params={"token": token})

    assert resp.status_code == 401
    assert resp.json() == {"error": "Invalid or expired token"}


def test_unknown_kit_type_is_bad_request(client, token_for) -> None:
    resp = client.get("/api/pdf/platino", params={"token": token_for("platino")})

    assert resp.status_code == 400
    assert resp.json() == {"error": "Invalid kit type"}


def test_unknown_orientation_is_bad_request(client, token_for) -> None:
    resp = client.get("/api/pdf/oro", params={"token": token_for("oro"), "orientation": "diag"})

    assert resp.status_code == 400
    assert resp.json() == {"error": "Invalid orientation"}


def test_empty_orientation_uses_horizontal(client, blob_store, token_for) -> None:
    resp = client.get("/api/pdf/oro", params={"token": token_for("oro"), "orientation": ""})

    assert resp.status_code == 200
    assert blob_store.downloads == ["oro/camp_q1_26_v1.1_oro_hor.pdf"]


def test_bad_request_checked_before_token(client) -> None:
    resp = client.get("/api/pdf/platino")

    assert resp.status_code == 400


def test_storage_failure_is_server_error(client, blob_store, token_for) -> None:
    blob_store.objects.clear()

    resp = client.get("/api/pdf/oro", params={"token": token_for("oro")})

    assert resp.status_code == 500
    assert resp.json() == {"error": "Could not load PDF"}


def test_non_pdf_blob_is_server_error(client, blob_store, token_for) -> None:
    blob_store.objects["oro/camp_q1_26_v1.1_oro_hor.pdf"] = b"<html>not a pdf</html>"

    resp = client.get("/api/pdf/oro", params={"token": token_for("oro")})

    assert resp.status_code == 500
    assert resp.json() == {"error": "Could not load PDF"}


@pytest.mark.asyncio
async def test_gate_fetch_raises_store_error_for_missing_object(services, token_for) -> None:
    services.blob_store.objects.clear()

    with pytest.raises(StoreAppError):
        await services.pdf_gate.fetch("oro", "ver", token_for("oro"))
