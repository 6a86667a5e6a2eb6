"""Pytest fixtures for integration tests.

This module provides fixtures for:
- Generating client code from the greeter schema
- Starting/stopping a FastAPI server speaking the Connect protocol
- Importing the generated client package
"""

from __future__ import annotations

import importlib
import json
import struct
import sys
import threading
import time
from collections.abc import AsyncIterator, Generator
from pathlib import Path
from types import ModuleType
from typing import Any

import httpx
import pytest
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, StreamingResponse

from connectgen import GenerationProfile, OutputSpec, generate_package, load_schema

SCHEMA_PATH = Path(__file__).parent / "greeter.json"
PACKAGE_NAME = "greeter_connect_it"
TEST_SERVER_HOST = "127.0.0.1"
TEST_SERVER_PORT = 18766
SERVICE_PREFIX = "/helloworld.v1.HelloWorldService"

received: list[tuple[str, dict[str, Any]]] = []


def frame(message: dict[str, Any], flags: int = 0) -> bytes:
    payload = json.dumps(message).encode("utf-8")
    return struct.pack(">BI", flags, len(payload)) + payload


def create_app() -> FastAPI:
    """Create a greeter service answering Connect unary and streaming calls."""
    app = FastAPI(title="Greeter Connect API", version="1.0.0")

    @app.get("/health")
    def health_check() -> dict[str, str]:
        return {"status": "ok"}

    @app.get(f"{SERVICE_PREFIX}/SayHello")
    def say_hello(encoding: str, message: str) -> dict[str, str]:
        request = json.loads(message)
        received.append(("SayHello", request))
        reply = f"hello {request['name']}"
        if request.get("loud"):
            reply = reply.upper()
        return {"reply": reply}

    @app.post(f"{SERVICE_PREFIX}/CreateGreeting")
    async def create_greeting(request: Request) -> Any:
        body = await request.json()
        received.append(("CreateGreeting", body))
        if not body.get("name"):
            return JSONResponse({"code": "invalid_argument", "message": "name is required"}, status_code=400)
        return {"reply": f"created {body['name']} {','.join(body.get('tags', []))}".rstrip()}

    @app.post(f"{SERVICE_PREFIX}/WatchGreetings")
    async def watch_greetings(request: Request) -> StreamingResponse:
        data = await request.body()
        body = json.loads(data[5:])
        received.append(("WatchGreetings", body))

        async def events() -> AsyncIterator[bytes]:
            for index in range(body.get("maxEvents", 3)):
                yield frame({"text": f"hello {body['name']}", "index": index})
            if body["name"] == "fail":
                yield frame({"error": {"code": "aborted", "message": "watch aborted"}}, flags=0x02)
            else:
                yield frame({}, flags=0x02)

        return StreamingResponse(events(), media_type="application/connect+json")

    return app


app = create_app()


class ServerThread(threading.Thread):
    """Thread that runs uvicorn server."""

    def __init__(self) -> None:
        super().__init__(daemon=True)
        self.server: uvicorn.Server | None = None

    def run(self) -> None:
        config = uvicorn.Config(
            app,
            host=TEST_SERVER_HOST,
            port=TEST_SERVER_PORT,
            log_level="error",
        )
        self.server = uvicorn.Server(config)
        self.server.run()

    def stop(self) -> None:
        if self.server:
            self.server.should_exit = True


@pytest.fixture(scope="session")
def server() -> Generator[str, None, None]:
    """Start the test server and return the base URL."""
    server_thread = ServerThread()
    server_thread.start()

    base_url = f"http://{TEST_SERVER_HOST}:{TEST_SERVER_PORT}"
    for _ in range(50):
        try:
            response = httpx.get(f"{base_url}/health", timeout=1.0)
            if response.status_code == 200:
                break
        except httpx.TransportError:
            time.sleep(0.1)
    else:
        raise RuntimeError("Test server failed to start")

    yield base_url

    server_thread.stop()


@pytest.fixture(scope="session")
def generated_dir(tmp_path_factory: pytest.TempPathFactory, server: str) -> Path:
    """Generate the client package with the test server as its default base URL."""
    output_dir = tmp_path_factory.mktemp("generated") / PACKAGE_NAME
    profile = GenerationProfile(base_url=server)
    generate_package(OutputSpec(output_dir=output_dir), load_schema(SCHEMA_PATH), profile)
    return output_dir


@pytest.fixture(scope="session")
def generated_module(generated_dir: Path) -> Generator[ModuleType, None, None]:
    """Import the generated client unit from its namespace package."""
    parent_dir = str(generated_dir.parent)
    sys.path.insert(0, parent_dir)
    try:
        yield importlib.import_module(f"{PACKAGE_NAME}.helloworld.v1.greeter_connect")
    finally:
        sys.path.remove(parent_dir)


@pytest.fixture(scope="session")
def runtime_module(generated_module: ModuleType) -> ModuleType:
    return sys.modules[f"{PACKAGE_NAME}.connect_runtime"]


@pytest.fixture(autouse=True)
def received_requests() -> Generator[list[tuple[str, dict[str, Any]]], None, None]:
    """Reset the requests recorded by the server before each test."""
    received.clear()
    yield received
