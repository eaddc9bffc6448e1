"""Local preview server for Postpress.

Serves the built site over HTTP and rebuilds it when sources change:
- Directory URLs are answered with their index.html; anything missing gets a
  404, using the site's own 404.html when it has one.
- A watchdog observer watches the source tree (ignoring the destination) and
  triggers a rebuild, debounced so an editor's burst of events builds once.

Key classes:
- PreviewServer: Builds, serves and watches a site.
- _PreviewHandler: HTTP handler that never lists directories.
- _ChangeHandler: File system event handler for triggering rebuilds.
"""

from __future__ import annotations

import functools
import threading
import time
from http.server import SimpleHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path

from loguru import logger
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from .build import BuildResult, build_site
from .config import load_config
from .errors import BuildError


class _PreviewHandler(SimpleHTTPRequestHandler):
    """Static file handler that serves 404.html instead of directory listings."""

    def end_headers(self):
        self.send_header("Cache-Control", "no-cache, no-store, must-revalidate")
        super().end_headers()

    def list_directory(self, path):  # pragma: no cover - exercised via send_head
        return self._serve_404()

    def _serve_404(self):
        error_page = Path(self.directory) / "404.html"
        if error_page.exists():
            encoded = error_page.read_bytes()
            self.send_response(404)
            self.send_header("Content-type", "text/html; charset=utf-8")
            self.send_header("Content-Length", str(len(encoded)))
            self.end_headers()
            self.wfile.write(encoded)
            return None
        self.send_error(404, "File not found")
        return None

    def send_head(self):
        path = Path(self.translate_path(self.path))
        if path.is_dir() and not (path / "index.html").exists():
            return self._serve_404()
        if not path.exists():
            return self._serve_404()
        return super().send_head()

    def log_message(self, format, *args):  # pragma: no cover - console noise
        logger.debug("{} - {}", self.address_string(), format % args)


class PreviewServer:
    """Builds a site, serves the destination and rebuilds on change.

    Attributes:
        source: Root of the source tree.
        destination: Directory being served.
        host: Interface to bind.
        port: HTTP port.
        include_drafts: Whether builds include drafts.
        jobs: Worker threads per build.
    """

    def __init__(
        self,
        source: Path,
        destination: Path | None = None,
        host: str = "127.0.0.1",
        port: int = 4000,
        include_drafts: bool = False,
        jobs: int = 1,
    ):
        self.source = source
        overrides = None
        if destination is not None:
            overrides = {"destination": str(destination.absolute())}
        self.destination = load_config(source, overrides).destination
        self.host = host
        self.port = port
        self.include_drafts = include_drafts
        self.jobs = jobs
        self._observer: Observer | None = None
        self._lock = threading.Lock()
        self._last_rebuild_at = 0.0
        self._debounce_seconds = 0.2

    def build(self) -> BuildResult:
        result = build_site(
            self.source,
            destination=self.destination,
            include_drafts=self.include_drafts,
            jobs=self.jobs,
        )
        if result.failures:
            logger.warning("{} document(s) failed to render", len(result.failures))
        return result

    def start(self, watch: bool = True) -> None:  # pragma: no cover - integration path
        self.build()
        if watch:
            self._start_watcher()
        handler = functools.partial(_PreviewHandler, directory=str(self.destination))
        httpd = ThreadingHTTPServer((self.host, self.port), handler)
        logger.info("Serving {} at http://{}:{}", self.destination, self.host, self.port)
        try:
            httpd.serve_forever()
        except KeyboardInterrupt:
            pass
        finally:
            httpd.server_close()
            self.stop()

    def stop(self) -> None:
        if self._observer:
            self._observer.stop()
            self._observer.join()
            self._observer = None

    def _start_watcher(self) -> None:
        observer = Observer()
        observer.schedule(_ChangeHandler(self), str(self.source), recursive=True)
        observer.start()
        self._observer = observer

    def rebuild(self) -> bool:
        """Rebuild unless a rebuild is running or one just finished.

        Returns:
            True if a build ran.
        """
        now = time.monotonic()
        if now - self._last_rebuild_at < self._debounce_seconds:
            return False
        if not self._lock.acquire(blocking=False):
            return False
        try:
            logger.info("Change detected; rebuilding...")
            try:
                self.build()
            except BuildError as exc:
                logger.error("Build failed: {}", exc)
            return True
        finally:
            self._last_rebuild_at = time.monotonic()
            self._lock.release()


class _ChangeHandler(FileSystemEventHandler):
    def __init__(self, server: PreviewServer):
        super().__init__()
        self.server = server

    def on_any_event(self, event):
        if event.is_directory:
            return
        path = Path(event.src_path).resolve()
        destination = self.server.destination.resolve()
        if path == destination or destination in path.parents:
            return
        try:
            relative = path.relative_to(self.server.source.resolve())
        except ValueError:
            return
        if any(part.startswith(".") for part in relative.parts):
            return
        self.server.rebuild()
