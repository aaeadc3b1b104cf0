"""Main FastMCP server — mounts the pet video sub-server."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastmcp import FastMCP

from .client import GeminiClient
from .config import get_config
from .handoff import result_store
from .tools.analysis import analysis_server

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _lifespan(server: FastMCP):
    """Startup/shutdown hook; tears down shared Gemini clients."""
    if not get_config().gemini_api_key:
        logger.warning("GEMINI_API_KEY is not set; every analysis will return the fallback record")
    yield {}
    result_store.clear()
    closed = await GeminiClient.close_all()
    logger.info("Lifespan shutdown: closed %d client(s)", closed)


app = FastMCP(
    "pet-vision",
    instructions=(
        "PetVision AI — upload a short pet video (MP4/MOV, up to 100 MB) with "
        "pet_video_analyze to get a Gemini-backed health screening: concern level, "
        "observations, possible causes, and recommendations. Fetch it again with "
        "pet_video_results. Not a substitute for a veterinary examination."
    ),
    lifespan=_lifespan,
)

app.mount(analysis_server)


def main() -> None:
    """Entry-point for ``pet-vision-mcp`` console script."""
    app.run()


if __name__ == "__main__":
    main()
