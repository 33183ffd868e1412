"""FastAPI app factory + lifespan (startup/shutdown)."""

import asyncio
import time
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional, Sequence

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse

import config
from monitor.hub import BroadcastHub
from monitor.logging import get_logger
from monitor.sessions import SessionRegistry

from . import routes


def create_app(
    agent_command: Optional[Sequence[str]] = None,
    default_cwd: Optional[str] = None,
    demo_interval: Optional[float] = None,
    static_dir: Optional[Path] = None,
    cors_origins: Optional[Sequence[str]] = None,
) -> FastAPI:
    """Build and return the configured FastAPI application.

    Arguments override the matching ``config`` values (tests use this to
    point the registry at a fake agent).
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Startup / shutdown lifecycle."""
        logger = get_logger()
        # Startup
        hub = BroadcastHub(queue_size=config.OBSERVER_QUEUE_SIZE)
        registry = SessionRegistry(
            hub,
            agent_command=agent_command or config.get_agent_command(),
            default_cwd=default_cwd or config.DEFAULT_CWD,
        )
        routes.hub = hub
        routes.registry = registry
        routes.demo_interval = config.DEMO_INTERVAL if demo_interval is None else demo_interval
        routes._start_time = time.time()
        app.state.hub = hub
        app.state.registry = registry
        logger.info(f"Agent command: {' '.join(registry.agent_command)}")

        yield

        # Shutdown
        for task in list(routes._demo_tasks):
            task.cancel()
        await registry.shutdown(config.SHUTDOWN_GRACE_SECONDS)
        hub.close()
        await asyncio.sleep(0)

    app = FastAPI(
        title="Agent Monitor",
        description="Live event stream for autonomous coding-agent sessions",
        version="0.1.0",
        lifespan=lifespan,
    )

    # CORS only for explicitly configured origins
    origins = list(config.CORS_ORIGINS if cors_origins is None else cors_origins)
    if origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.include_router(routes.router)
    app.include_router(routes.ws_router)

    # Serve the frontend if it has been put in place
    frontend = Path(static_dir or config.STATIC_DIR)
    if frontend.exists():

        @app.get("/{full_path:path}")
        async def serve_frontend(full_path: str):
            file_path = (frontend / full_path).resolve()
            if (file_path.is_relative_to(frontend.resolve())
                    and file_path.exists() and file_path.is_file()):
                return FileResponse(file_path)
            return FileResponse(frontend / "index.html")

    return app
