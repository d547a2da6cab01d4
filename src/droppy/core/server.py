"""
Starlette file server started by `droppy start`.

Serves the client bundle, a JSON directory listing of the files directory and
the files themselves.
"""

import os
import socket
from pathlib import Path
from typing import Optional

import uvicorn
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import FileResponse, JSONResponse, Response
from starlette.routing import Mount, Route
from starlette.staticfiles import StaticFiles

from droppy.core import cfg as cfg_mod
from droppy.core.errors import ServerStartError
from droppy.core.utils.logging import get_logger
from droppy.version import __version__

logger = get_logger("droppy.server")

JsonObject = dict[str, object]


class FileServer:
    def __init__(self, paths, config: Optional[JsonObject] = None, dev: bool = False):
        self.paths = paths
        self.config = config or dict(cfg_mod.DEFAULTS)
        self.dev = dev
        self._app: Optional[Starlette] = None

    def _resolve_inside(self, rel: str) -> Optional[Path]:
        """Map a request path into the files dir; None when it escapes it."""
        root = Path(self.paths.files).resolve()
        target = (root / rel.lstrip("/")).resolve()
        if target != root and root not in target.parents:
            return None
        return target

    @staticmethod
    def _entry(path: Path) -> JsonObject:
        st = path.stat()
        return {
            "name": path.name,
            "type": "dir" if path.is_dir() else "file",
            "size": 0 if path.is_dir() else int(st.st_size),
            "mtime": int(st.st_mtime),
        }

    async def health(self, request: Request) -> JSONResponse:
        return JSONResponse({"ok": True, "version": __version__})

    async def index(self, request: Request) -> Response:
        page = Path(self.paths.client) / "index.html"
        if not page.is_file():
            return JSONResponse({"error": "client not built"}, status_code=503)
        return FileResponse(str(page), media_type="text/html")

    async def list_dir(self, request: Request) -> JSONResponse:
        rel = str(request.path_params.get("path") or "")
        target = self._resolve_inside(rel)
        if target is None:
            return JSONResponse({"error": "forbidden"}, status_code=403)
        if not target.exists():
            return JSONResponse({"error": "not found"}, status_code=404)
        if not target.is_dir():
            return JSONResponse({"error": "not a directory"}, status_code=400)
        entries = []
        for child in target.iterdir():
            try:
                entries.append(self._entry(child))
            except OSError:
                # Vanished between listing and stat.
                continue
        entries.sort(key=lambda e: (e["type"] != "dir", str(e["name"]).lower()))
        return JSONResponse({"path": rel.strip("/"), "entries": entries})

    def create_app(self) -> Starlette:
        routes = [
            Route("/", self.index, methods=["GET"]),
            Route("/health", self.health, methods=["GET"]),
            Route("/api/list", self.list_dir, methods=["GET"]),
            Route("/api/list/{path:path}", self.list_dir, methods=["GET"]),
            Mount("/files", app=StaticFiles(directory=str(self.paths.files)), name="files"),
        ]
        if os.path.isdir(self.paths.client):
            routes.append(Mount("/client", app=StaticFiles(directory=str(self.paths.client)), name="client"))
        self._app = Starlette(debug=self.dev, routes=routes)
        return self._app


def check_bind(host: str, port: int) -> None:
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    try:
        with socket.socket(family, socket.SOCK_STREAM) as sock:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((host, port))
    except OSError as e:
        raise ServerStartError(f"Unable to listen on {host}:{port}: {e}") from e


def start(runtime, paths, *, foreground: bool = True, run=None) -> int:
    """
    Bootstrap the server and block until it shuts down.

    Startup problems raise ServerStartError. Returns 0 after a clean shutdown.
    """
    try:
        paths.ensure_dirs()
        config = cfg_mod.init(paths)
    except OSError as e:
        raise ServerStartError(f"Unable to prepare directories: {e}") from e

    check_bind(runtime.host, runtime.port)
    app = FileServer(paths, config=config, dev=runtime.dev).create_app()
    logger.info(
        "server starting",
        host=runtime.host,
        port=runtime.port,
        files=str(paths.files),
        mode=runtime.mode,
        foreground=foreground,
    )
    server = uvicorn.Server(
        uvicorn.Config(
            app,
            host=runtime.host,
            port=runtime.port,
            log_level="debug" if runtime.dev else "warning",
            access_log=runtime.dev,
        )
    )
    try:
        (run or server.run)()
    except SystemExit as e:
        # uvicorn exits the process on bind/lifespan startup failures.
        raise ServerStartError(f"Server on {runtime.host}:{runtime.port} failed to start") from e
    if run is None and not server.started:
        raise ServerStartError(f"Server on {runtime.host}:{runtime.port} did not start")
    logger.info("server stopped")
    return 0
