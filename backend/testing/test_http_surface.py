#!/usr/bin/env python3
"""
Tests for the endpoints, request admission and error handling owned by the server
"""

import logging
from datetime import datetime

import pytest
from fastapi import APIRouter, Request
from fastapi.testclient import TestClient

from shared.startup.config import DeploymentMode, ServerConfig
from shared.startup.services import create_application


def make_business_router():
    router = APIRouter()

    @router.get("/explode")
    async def explode():
        raise RuntimeError("boom")

    @router.post("/echo")
    async def echo(request: Request):
        return {"received": len(await request.body())}

    return router


def make_storage_router():
    router = APIRouter()

    @router.get("/status")
    async def status():
        return {"storage": "ready"}

    return router


def make_client(config, collaborators_factory):
    collaborators = collaborators_factory(routes=make_business_router(), storage_routes=make_storage_router())
    return TestClient(create_application(config, collaborators), raise_server_exceptions=False)


@pytest.fixture
def dev_client(dev_config, collaborators_factory):
    return make_client(dev_config, collaborators_factory)


@pytest.fixture
def prod_client(prod_config, collaborators_factory):
    return make_client(prod_config, collaborators_factory)


def test_health_reports_ok_with_iso_timestamp(dev_client):
    for _ in range(2):
        response = dev_client.get("/api/health")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "OK"
        assert body["message"]
        assert body["environment"] == "development"
        datetime.fromisoformat(body["timestamp"])


def test_health_reports_production_environment(prod_client):
    assert prod_client.get("/api/health").json()["environment"] == "production"


def test_root_identifies_api(dev_client):
    response = dev_client.get("/")
    assert response.status_code == 200
    assert response.json() == {"message": "API Server Running", "version": "1.0.0"}


def test_storage_routes_are_mounted_under_prefix(dev_client):
    response = dev_client.get("/storage/status")
    assert response.status_code == 200
    assert response.json() == {"storage": "ready"}


def test_unhandled_error_exposes_message_outside_production(dev_client):
    response = dev_client.get("/explode")
    assert response.status_code == 500
    assert response.json() == {"error": "Internal Server Error", "message": "boom"}


def test_unhandled_error_is_generic_in_production(prod_client, caplog):
    with caplog.at_level(logging.ERROR):
        response = prod_client.get("/explode")
    assert response.status_code == 500
    assert response.json() == {"error": "Internal Server Error", "message": "Something went wrong"}
    assert "boom" in caplog.text


def test_server_keeps_serving_after_request_error(dev_client):
    assert dev_client.get("/explode").status_code == 500
    assert dev_client.get("/api/health").status_code == 200


def test_private_network_origin_gets_credentialed_cors_headers(dev_client):
    response = dev_client.get("/api/health", headers={"Origin": "http://192.168.1.5:3000"})
    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "http://192.168.1.5:3000"
    assert response.headers["access-control-allow-credentials"] == "true"
    assert "Origin" in response.headers["vary"]


def test_foreign_origin_is_rejected_in_development(dev_client):
    response = dev_client.get("/", headers={"Origin": "http://evil.example.com"})
    assert response.status_code == 403
    assert response.json() == {"error": "Forbidden", "message": "Not allowed by CORS"}
    assert "access-control-allow-origin" not in response.headers


def test_rejected_origin_never_reaches_route(dev_client, caplog):
    with caplog.at_level(logging.ERROR):
        response = dev_client.get("/explode", headers={"Origin": "http://evil.example.com"})
    assert response.status_code == 403
    assert "boom" not in caplog.text


def test_foreign_origin_is_flagged_but_allowed_in_production(prod_client, caplog):
    with caplog.at_level(logging.WARNING):
        response = prod_client.get("/", headers={"Origin": "http://evil.example.com"})
    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "http://evil.example.com"
    assert "CORS blocked origin: http://evil.example.com" in caplog.text


def test_request_without_origin_has_no_cors_headers(dev_client):
    response = dev_client.get("/")
    assert response.status_code == 200
    assert "access-control-allow-origin" not in response.headers


def test_preflight_is_answered_by_cors_middleware(dev_client):
    response = dev_client.options("/echo", headers={
        "Origin": "http://localhost:3000",
        "Access-Control-Request-Method": "POST",
        "Access-Control-Request-Headers": "content-type,x-session-id",
    })
    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "http://localhost:3000"
    assert response.headers["access-control-allow-credentials"] == "true"
    assert "POST" in response.headers["access-control-allow-methods"]
    assert response.headers["access-control-allow-headers"] == "content-type,x-session-id"


def test_security_headers_are_applied(dev_client):
    response = dev_client.get("/api/health")
    assert response.headers["x-content-type-options"] == "nosniff"
    assert response.headers["x-frame-options"] == "SAMEORIGIN"
    assert "strict-transport-security" in response.headers


def test_oversized_body_is_rejected(collaborators_factory):
    config = ServerConfig(environment=DeploymentMode.DEVELOPMENT, max_body_bytes=16)
    client = make_client(config, collaborators_factory)

    assert client.post("/echo", content=b"x" * 8).json() == {"received": 8}

    response = client.post("/echo", content=b"x" * 64)
    assert response.status_code == 413
    assert response.json()["error"] == "Payload Too Large"


def test_docs_disabled_in_production(dev_client, prod_client):
    assert dev_client.get("/docs").status_code == 200
    assert prod_client.get("/docs").status_code == 404


def test_preflight_from_foreign_origin_is_rejected_in_development(dev_client):
    response = dev_client.options("/echo", headers={
        "Origin": "http://evil.example.com",
        "Access-Control-Request-Method": "POST",
    })
    assert response.status_code == 403
    assert "access-control-allow-origin" not in response.headers


def test_error_response_keeps_cors_and_security_headers(dev_client):
    response = dev_client.get("/explode", headers={"Origin": "http://localhost:3000"})
    assert response.status_code == 500
    assert response.json() == {"error": "Internal Server Error", "message": "boom"}
    assert response.headers["access-control-allow-origin"] == "http://localhost:3000"
    assert response.headers["access-control-allow-credentials"] == "true"
    assert response.headers["x-content-type-options"] == "nosniff"


def test_production_error_response_keeps_cors_headers(prod_client):
    response = prod_client.get("/explode", headers={"Origin": "https://lighthearted-ilama-a7bfbc.netlify.app"})
    assert response.status_code == 500
    assert response.json()["message"] == "Something went wrong"
    assert response.headers["access-control-allow-origin"] == "https://lighthearted-ilama-a7bfbc.netlify.app"
