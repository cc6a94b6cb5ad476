"""Lifecycle of a local PlantUML picoweb process and SVG rendering against it.

The server is started lazily by the first `render()` call (or an explicit
`ensure_started()`), shared by every concurrent caller while it boots, and
considered ready once the picoweb banner appears on stdout or the startup
grace period runs out, whichever comes first.
"""
from __future__ import annotations

import asyncio
import contextlib
import logging
import shutil
from collections import deque
from enum import Enum
from typing import Awaitable, Callable, Deque, Mapping, Optional, Set

import httpx

from plantuml_gateway.errors import GatewayError, ProcessStartupError
from plantuml_gateway.schemas import RenderResult
from plantuml_gateway.utils.config import Settings, get_config, settings as default_settings
from plantuml_gateway.utils.paths import require_jar, require_java
from plantuml_gateway.utils.plantuml_encode import plantuml_encode


logger = logging.getLogger(__name__)

RENDER_TIMEOUT = "render timeout"
CONNECT_FAILURE_PREFIX = "Failed to connect to PlantUML server"
_STOP_WAIT_SECONDS = 5.0
_WARMUP_RETRY_DELAY = 0.5
_READ_CHUNK = 4096
_STDERR_TAIL_CHUNKS = 16  # about 64 KiB of the most recent stderr

SpawnFn = Callable[..., Awaitable[asyncio.subprocess.Process]]
ClientFactory = Callable[[], httpx.AsyncClient]


class ServerProcessState(str, Enum):
    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"


class PlantUmlServer:
    """Owns one `java -jar plantuml.jar -picoweb:<port>` child process."""

    def __init__(
        self,
        jar_path: Optional[str] = None,
        settings: Optional[Settings] = None,
        *,
        spawn: Optional[SpawnFn] = None,
        http_client_factory: Optional[ClientFactory] = None,
        environ: Optional[Mapping[str, str]] = None,
        which: Callable[[str], Optional[str]] = shutil.which,
    ) -> None:
        self._settings = settings or default_settings
        self._jar_path = jar_path or get_config("jar_path", None, self._settings)
        self._spawn = spawn or asyncio.create_subprocess_exec
        self._http_client_factory = http_client_factory or self._default_client
        self._environ = environ
        self._which = which

        self._state = ServerProcessState.STOPPED
        self._process: Optional[asyncio.subprocess.Process] = None
        self._start_task: Optional[asyncio.Task] = None
        self._client: Optional[httpx.AsyncClient] = None
        self._stderr_chunks: Deque[str] = deque(maxlen=_STDERR_TAIL_CHUNKS)
        self._background: Set[asyncio.Task] = set()
        self._warmup_pending = False

    @property
    def port(self) -> int:
        return self._settings.server_port

    @property
    def state(self) -> ServerProcessState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state is ServerProcessState.RUNNING

    @property
    def diagnostics(self) -> str:
        """The most recent stderr output of the current process."""
        return "".join(self._stderr_chunks)

    def svg_url(self, token: str) -> str:
        return f"http://localhost:{self.port}/svg/{token}"

    def _default_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=httpx.Timeout(self._settings.request_timeout))

    # -- lifecycle ---------------------------------------------------------

    async def ensure_started(self) -> None:
        """Start the renderer if needed; concurrent callers share one attempt.

        Raises ConfigurationError when java or the jar cannot be found and
        ProcessStartupError when the process dies before becoming ready.
        """
        if self._state is ServerProcessState.RUNNING:
            return
        if self._start_task is None:
            task = asyncio.ensure_future(self._do_start())
            task.add_done_callback(self._start_finished)
            self._start_task = task
        # A cancelled caller must not cancel the start other callers are awaiting.
        await asyncio.shield(self._start_task)

    def _owns_start(self) -> bool:
        return self._start_task is asyncio.current_task()

    def _start_finished(self, task: asyncio.Task) -> None:
        if self._start_task is task:
            self._start_task = None
        if not task.cancelled():
            # Mark the exception retrieved; awaiting callers re-raise it themselves.
            task.exception()

    async def _do_start(self) -> None:
        java = require_java(self._settings.java_path, environ=self._environ, which=self._which)
        jar = require_jar(self._jar_path)

        self._state = ServerProcessState.STARTING
        stderr_chunks: Deque[str] = deque(maxlen=_STDERR_TAIL_CHUNKS)
        self._stderr_chunks = stderr_chunks
        args = ["-jar", jar, f"-picoweb:{self.port}"]
        logger.info("Starting PlantUML server", extra={"java": java, "jar": jar, "port": self.port})
        try:
            process = await self._spawn(
                java,
                *args,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            if self._owns_start():
                self._state = ServerProcessState.STOPPED
            raise ProcessStartupError(f"Failed to start PlantUML server: {exc}") from exc

        if not self._owns_start():
            # stop() ran while the process was being spawned.
            with contextlib.suppress(ProcessLookupError):
                process.terminate()
            raise ProcessStartupError("PlantUML server was stopped during startup")

        self._process = process
        marker_seen = asyncio.Event()
        stdout_task = self._track(asyncio.ensure_future(self._watch_stdout(process, marker_seen)))
        stderr_task = self._track(asyncio.ensure_future(self._capture_stderr(process, stderr_chunks)))
        exit_task = asyncio.ensure_future(process.wait())
        marker_task = asyncio.ensure_future(marker_seen.wait())

        done, _ = await asyncio.wait(
            {exit_task, marker_task},
            timeout=self._settings.startup_grace_period,
            return_when=asyncio.FIRST_COMPLETED,
        )
        marker_task.cancel()

        if marker_seen.is_set():
            logger.info("PlantUML server ready", extra={"port": self.port})
        elif exit_task in done:
            with contextlib.suppress(asyncio.TimeoutError):
                await asyncio.wait_for(asyncio.gather(stdout_task, stderr_task), timeout=1.0)
            code = exit_task.result()
            if self._process is process:
                self._process = None
            if self._owns_start():
                self._state = ServerProcessState.STOPPED
            stderr = "".join(stderr_chunks)
            logger.warning("PlantUML server exited during startup", extra={"returncode": code})
            raise ProcessStartupError(
                f"PlantUML server exited with code {code}. Error: {stderr}",
                returncode=code,
                stderr=stderr,
            )
        else:
            logger.warning(
                "PlantUML ready marker not seen after %.1fs; assuming the server is up",
                self._settings.startup_grace_period,
            )

        if self._process is not process:
            # stop() ran while we were waiting for the banner.
            exit_task.cancel()
            raise ProcessStartupError("PlantUML server was stopped during startup")

        self._warmup_pending = self._settings.warmup_retry and not marker_seen.is_set()
        self._state = ServerProcessState.RUNNING
        self._track(asyncio.ensure_future(self._watch_exit(process, exit_task)))

    async def _watch_stdout(self, process, marker_seen: asyncio.Event) -> None:
        if process.stdout is None:
            return
        marker = self._settings.ready_marker
        seen = ""
        while True:
            chunk = await process.stdout.read(_READ_CHUNK)
            if not chunk:
                return
            if marker_seen.is_set():
                continue
            # Keep a tail so a banner split across two reads is still found.
            seen = (seen + chunk.decode("utf-8", errors="replace"))[-(len(marker) + _READ_CHUNK):]
            if marker in seen:
                marker_seen.set()

    async def _capture_stderr(self, process, chunks: Deque[str]) -> None:
        if process.stderr is None:
            return
        while True:
            chunk = await process.stderr.read(_READ_CHUNK)
            if not chunk:
                return
            chunks.append(chunk.decode("utf-8", errors="replace"))

    async def _watch_exit(self, process, exit_task: asyncio.Future) -> None:
        code = await exit_task
        if self._process is process:
            logger.warning("PlantUML server exited", extra={"returncode": code})
            self._process = None
            self._state = ServerProcessState.STOPPED

    def _track(self, task: asyncio.Task) -> asyncio.Task:
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    async def stop(self) -> None:
        """Terminate the process (if any) and close the HTTP client. Idempotent.

        A start still in flight is abandoned: its callers get ProcessStartupError
        and the next `ensure_started()` spawns a fresh process.
        """
        process = self._process
        self._start_task = None
        self._process = None
        self._state = ServerProcessState.STOPPED
        self._warmup_pending = False

        if process is not None and process.returncode is None:
            logger.info("Stopping PlantUML server")
            with contextlib.suppress(ProcessLookupError):
                process.terminate()
            try:
                await asyncio.wait_for(process.wait(), timeout=_STOP_WAIT_SECONDS)
            except asyncio.TimeoutError:
                with contextlib.suppress(ProcessLookupError):
                    process.kill()

        if self._client is not None:
            client, self._client = self._client, None
            await client.aclose()

    # -- rendering ---------------------------------------------------------

    async def render(self, source_text: str) -> RenderResult:
        """Render PlantUML text to SVG. Never raises."""
        try:
            await self.ensure_started()
        except GatewayError as exc:
            logger.warning("PlantUML server unavailable: %s", exc)
            return RenderResult.failure(str(exc))

        url = self.svg_url(plantuml_encode(source_text))
        warmup, self._warmup_pending = self._warmup_pending, False
        result = await self._fetch_svg(url)
        if warmup and result.error and result.error.startswith(CONNECT_FAILURE_PREFIX):
            logger.info("First request after fallback startup failed; retrying once")
            await asyncio.sleep(_WARMUP_RETRY_DELAY)
            result = await self._fetch_svg(url)
        return result

    async def _fetch_svg(self, url: str) -> RenderResult:
        if self._client is None:
            self._client = self._http_client_factory()
        logger.debug("PlantUML GET %s", url)
        try:
            response = await asyncio.wait_for(
                self._client.get(url), timeout=self._settings.request_timeout
            )
        except (asyncio.TimeoutError, httpx.TimeoutException):
            return RenderResult.failure(RENDER_TIMEOUT)
        except httpx.HTTPError as exc:
            return RenderResult.failure(f"{CONNECT_FAILURE_PREFIX}: {exc}")

        if response.status_code == 200:
            return RenderResult.success(response.text)
        logger.warning("PlantUML server returned status %s", response.status_code)
        return RenderResult.failure(f"PlantUML server returned status {response.status_code}")

