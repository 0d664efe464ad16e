"""
Live-server fixtures for integration tests.

Each test starts its own stub Emojify service on an ephemeral port in a
background thread, so the workflow talks real HTTP through ``requests``.

Key Concepts Demonstrated:
- Live server fixture with guaranteed shutdown
- Factory fixtures to script the service per test
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Generator

import pytest
from flask import Flask
from werkzeug.serving import make_server

from emojify_traffic.config import WorkflowSettings
from emojify_traffic.workflow import Workflow
from tests.integration.stub_service import create_stub_app


@pytest.fixture
def live_service() -> Generator[Callable[..., tuple[Flask, str]], None, None]:
    """
    Start stub services on demand.

    Yields:
        A factory taking :func:`create_stub_app` keyword arguments and
        returning ``(app, base_url)`` for a running server.
    """
    servers = []

    def _start(**kwargs) -> tuple[Flask, str]:
        app = create_stub_app(**kwargs)
        server = make_server("127.0.0.1", 0, app, threaded=True)
        thread = threading.Thread(target=server.serve_forever, daemon=True)
        thread.start()
        servers.append((server, thread))
        return app, f"http://127.0.0.1:{server.server_port}"

    yield _start

    for server, thread in servers:
        server.shutdown()
        thread.join(timeout=5)


@pytest.fixture
def live_workflow(live_service) -> Callable[..., tuple[Workflow, dict]]:
    """Build a fast workflow against a freshly started stub service."""

    def _build(**kwargs) -> tuple[Workflow, dict]:
        app, base_url = live_service(**kwargs)
        settings = WorkflowSettings(
            base_uri=base_url,
            request_timeout=5.0,
            submit_delay=0.0,
            poll_interval=0.0,
            poll_max_attempts=4,
        )
        return Workflow(settings), app.config["STATE"]

    return _build
