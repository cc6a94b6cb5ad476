import asyncio

import httpx
import pytest

from plantuml_gateway.utils.config import Settings


READY_BANNER = b"Starting PlantUML Picoweb Server on port 8888\n"


class FakeStream:
    """Stand-in for an asyncio subprocess pipe."""

    def __init__(self) -> None:
        self._queue: asyncio.Queue = asyncio.Queue()

    def feed(self, data: bytes) -> None:
        self._queue.put_nowait(data)

    def close(self) -> None:
        self._queue.put_nowait(b"")

    async def read(self, n: int = -1) -> bytes:
        chunk = await self._queue.get()
        if not chunk:
            self._queue.put_nowait(b"")
        return chunk


class FakeProcess:
    def __init__(self, stdout=(), stderr: bytes = b"", exit_code=None) -> None:
        self.stdout = FakeStream()
        self.stderr = FakeStream()
        self.returncode = None
        self.terminated = False
        self._exited = asyncio.Event()
        for chunk in stdout:
            self.stdout.feed(chunk)
        if stderr:
            self.stderr.feed(stderr)
        if exit_code is not None:
            self.exit(exit_code)

    def exit(self, code: int) -> None:
        if self.returncode is not None:
            return
        self.returncode = code
        self.stdout.close()
        self.stderr.close()
        self._exited.set()

    async def wait(self) -> int:
        await self._exited.wait()
        return self.returncode

    def terminate(self) -> None:
        self.terminated = True
        self.exit(-15)

    def kill(self) -> None:
        self.exit(-9)


class FakeSpawner:
    """Records every spawn and hands back FakeProcess instances."""

    def __init__(self, factory=None, delay: float = 0.0) -> None:
        self.calls = []
        self.processes = []
        self.observed_states = []
        self.server = None
        self._factory = factory or (lambda: FakeProcess(stdout=[READY_BANNER]))
        self._delay = delay

    async def __call__(self, program, *args, **kwargs):
        self.calls.append([program, *args])
        if self.server is not None:
            self.observed_states.append(self.server.state)
        if self._delay:
            await asyncio.sleep(self._delay)
        process = self._factory()
        self.processes.append(process)
        return process


class RecordingHandler:
    """httpx.MockTransport handler that records requests."""

    def __init__(self, status_code: int = 200, body: str = "<svg/>") -> None:
        self.status_code = status_code
        self.body = body
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, text=self.body)


def mock_client_factory(handler):
    return lambda: httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.fixture
def renderer_files(tmp_path):
    java = tmp_path / "java"
    java.write_text("#!/bin/sh\n", encoding="utf-8")
    jar = tmp_path / "plantuml.jar"
    jar.write_bytes(b"PK\x03\x04")
    return java, jar


@pytest.fixture
def gateway_settings(renderer_files):
    java, jar = renderer_files
    return Settings(
        _env_file=None,
        java_path=str(java),
        jar_path=str(jar),
        server_port=8888,
        startup_grace_period=0.2,
        request_timeout=1.0,
    )


@pytest.fixture
def spawner():
    return FakeSpawner()


@pytest.fixture
def svg_handler():
    return RecordingHandler(body='<svg xmlns="http://www.w3.org/2000/svg"><text>A</text></svg>')
