"""Development server for Folio.

Serves the built site with live reload for local authoring:
- Injects a reload script into HTML responses.
- Rejects directory listings and missing paths with a 404.
- Watches content, templates and assets and rebuilds on change.

Only one build runs at a time. A change noticed while a build is running is
dropped rather than queued, so a burst of file events collapses into a single
rebuild.

Key classes:
- DevServer: Main class for running the development server.
- _ReloadHandler: HTTP request handler that injects the reload script.
- _ChangeHandler: File system event handler triggering rebuilds.
"""

from __future__ import annotations

import asyncio
import functools
import json
import logging
import threading
import time
from http.server import SimpleHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from typing import Any

import websockets
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from .build import BlogBuilder, BuildError, load_config

logger = logging.getLogger(__name__)


class _ReloadHandler(SimpleHTTPRequestHandler):
    """HTTP request handler that injects a live reload script into HTML pages.

    Attributes:
        reload_script: JavaScript snippet connecting to the reload websocket.
    """

    reload_script_template = """
    <script>
    (() => {{
      const ws = new WebSocket('ws://' + location.hostname + ':{ws_port}');
      ws.onmessage = (event) => {{
        const data = JSON.parse(event.data || '{{}}');
        if (data.type === 'reload') location.reload();
      }};
    }})();
    </script>
    """
    reload_script = reload_script_template.format(ws_port=3003)

    def end_headers(self):
        self.send_header("Cache-Control", "no-cache")
        super().end_headers()

    def list_directory(self, path):  # pragma: no cover - exercised via send_head
        self.send_error(404, "Not Found")
        return None

    def log_message(self, format, *args):
        logger.debug("%s - %s", self.address_string(), format % args)

    def send_head(self):
        path_obj = Path(self.translate_path(self.path))
        if path_obj.is_dir():
            path_obj = path_obj / "index.html"
        if not path_obj.is_file():
            self.send_error(404, "Not Found")
            return None

        if path_obj.suffix == ".html":
            content = path_obj.read_text(encoding="utf-8")
            if "</body>" in content:
                content = content.replace("</body>", f"{self.reload_script}</body>")
            else:
                content += self.reload_script
            encoded = content.encode("utf-8")
            self.send_response(200)
            self.send_header("Content-type", "text/html; charset=utf-8")
            self.send_header("Content-Length", str(len(encoded)))
            self.end_headers()
            self.wfile.write(encoded)
            return None
        return super().send_head()


class DevServer:
    """Development server with auto-rebuild and live reload.

    Attributes:
        project_root: Root directory of the project.
        config: Site configuration.
        builder: Long-lived builder reused by every rebuild.
        output_dir: Directory where the built site is served from.
        http_port: Port for the HTTP server.
        root_url: Base URL of served pages, used in place of the site url.
        ws_port: Port for the reload websocket.
    """

    def __init__(
        self,
        project_root: Path,
        http_port: int | None = None,
        ws_port: int | None = None,
        config: dict[str, Any] | None = None,
    ):
        """Initialize the development server.

        Args:
            project_root: Root directory of the project.
            http_port: Optional override for the HTTP port.
            ws_port: Optional override for the websocket port.
            config: Optional configuration instead of folio.yaml.
        """
        self.project_root = project_root
        self.config = config if config is not None else load_config(project_root)
        self.http_port = int(http_port or self.config.get("port", 3002))
        if ws_port is not None:
            self.ws_port = ws_port
        elif http_port is not None:
            self.ws_port = self.http_port + 1
        else:
            self.ws_port = int(self.config.get("ws_port") or self.http_port + 1)
        # Served pages link to the local server, not the deployed site.
        self.root_url = f"http://localhost:{self.http_port}"
        site = self.config.get("site")
        site = dict(site) if isinstance(site, dict) else {}
        site["url"] = self.root_url
        dev_config = {**self.config, "site": site}
        self.builder = BlogBuilder(project_root, config=dev_config)
        self.output_dir = self.builder.output_dir
        self._reload_script = _ReloadHandler.reload_script_template.format(
            ws_port=self.ws_port
        )
        self.watch_dirs = [
            self.builder.content_dir,
            self.builder.templates.templates_dir,
            self.builder.assets_dir,
        ]
        self._observer: Observer | None = None
        self._ws_clients: set = set()
        self._loop = asyncio.new_event_loop()
        self._build_lock = threading.Lock()
        self._last_signature: tuple | None = None

    def start(self) -> None:  # pragma: no cover - integration path
        self.rebuild()
        threading.Thread(target=self._start_http, daemon=True).start()
        threading.Thread(target=self._start_ws, daemon=True).start()
        self._start_watcher()
        logger.info("Watching for changes...")
        try:
            while True:
                time.sleep(1)
        except KeyboardInterrupt:
            logger.info("Shutting down dev server...")
            self.stop()

    def stop(self) -> None:
        if self._observer:
            self._observer.stop()
            self._observer.join()
        self._loop.call_soon_threadsafe(self._loop.stop)

    @property
    def building(self) -> bool:
        """Whether a build is in progress."""
        return self._build_lock.locked()

    def rebuild(self) -> bool:
        """Rebuild the site unless a build is already running.

        Build failures are logged and the server keeps serving the previous
        output.

        Returns:
            True when a build ran, False when the trigger was dropped.
        """
        if not self._build_lock.acquire(blocking=False):
            logger.debug("Build in progress; dropping rebuild trigger")
            return False
        try:
            signature = self._compute_signature()
            if signature is not None and signature == self._last_signature:
                return False
            logger.info("Rebuilding...")
            try:
                self.builder.build()
            except BuildError as exc:
                logger.error("Build failed: %s", exc)
                return True
            except Exception:
                logger.exception("Build failed")
                return True
            self._last_signature = signature
            logger.info("Rebuild complete")
            self._broadcast_reload()
            return True
        finally:
            self.builder.templates.clear_cache()
            self._build_lock.release()

    def _start_http(self) -> None:  # pragma: no cover - integration path
        handler_cls = type(
            "_ReloadHandlerWithPort",
            (_ReloadHandler,),
            {"reload_script": self._reload_script},
        )
        handler = functools.partial(handler_cls, directory=str(self.output_dir))
        httpd = ThreadingHTTPServer(("", self.http_port), handler)
        logger.info("Dev server running at http://localhost:%d", self.http_port)
        logger.info("Serving files from: %s", self.output_dir)
        httpd.serve_forever()

    def _start_ws(self) -> None:
        asyncio.set_event_loop(self._loop)
        try:
            self._loop.run_until_complete(self._run_ws_server())
        except OSError as exc:
            logger.warning(
                "Live reload server failed to start (port %d): %s", self.ws_port, exc
            )

    async def _run_ws_server(self) -> None:  # pragma: no cover - integration path
        async with websockets.serve(self._ws_handler, "0.0.0.0", self.ws_port):
            await asyncio.Future()

    async def _ws_handler(self, websocket):
        self._ws_clients.add(websocket)
        try:
            await websocket.wait_closed()
        finally:
            self._ws_clients.discard(websocket)

    def _broadcast_reload(self):
        message = json.dumps({"type": "reload"})
        asyncio.run_coroutine_threadsafe(self._async_broadcast(message), self._loop)

    async def _async_broadcast(self, message: str):
        stale = set()
        for ws in self._ws_clients:
            try:
                await ws.send(message)
            except Exception:
                stale.add(ws)
        for ws in stale:
            self._ws_clients.discard(ws)

    def _start_watcher(self) -> None:  # pragma: no cover - integration path
        handler = _ChangeHandler(self)
        observer = Observer()
        for watch_path in self.watch_dirs:
            if watch_path.exists():
                observer.schedule(handler, str(watch_path), recursive=True)
        observer.start()
        self._observer = observer

    def _compute_signature(self) -> tuple | None:
        entries: list[tuple] = []
        for root in self.watch_dirs:
            if not root.exists():
                continue
            for path in sorted(root.rglob("*")):
                if path.is_dir():
                    continue
                try:
                    stat = path.stat()
                except OSError:
                    continue
                rel = path.relative_to(self.project_root)
                entries.append((str(rel), stat.st_mtime_ns, stat.st_size))
        return tuple(entries) if entries else None


class _ChangeHandler(FileSystemEventHandler):
    def __init__(self, server: DevServer):
        super().__init__()
        self.server = server

    def on_any_event(self, event):
        if event.is_directory:
            return
        path = Path(event.src_path)
        try:
            path.relative_to(self.server.output_dir)
            return
        except ValueError:
            pass
        if "node_modules" in path.parts:
            return
        logger.info("File changed: %s", path.name)
        self.server.rebuild()
