import asyncio
import logging
import os

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from dotenv import load_dotenv
try:
    from backend.app.errors import AggregationError, InvalidInput, MissingCredentialError
    from backend.app.models import ResolveResponse, VideosResponse
    from backend.app.services import mirror, youtube_api
    from backend.app.services.aggregator import DEFAULT_MAX_VIDEOS, DEFAULT_SORT_MODE, aggregate
    from backend.app.services.channel_url import parse_channel_url
    from backend.app.services.enrich import DEFAULT_STATS_CONCURRENCY
    from backend.app.services.sources import MirrorSource, VideoSource, YouTubeApiSource
except ModuleNotFoundError:
    from app.errors import AggregationError, InvalidInput, MissingCredentialError
    from app.models import ResolveResponse, VideosResponse
    from app.services import mirror, youtube_api
    from app.services.aggregator import DEFAULT_MAX_VIDEOS, DEFAULT_SORT_MODE, aggregate
    from app.services.channel_url import parse_channel_url
    from app.services.enrich import DEFAULT_STATS_CONCURRENCY
    from app.services.sources import MirrorSource, VideoSource, YouTubeApiSource


# ---------------------------
# Config
# ---------------------------

load_dotenv()

logging.basicConfig(
    level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

YOUTUBE_API_KEY = os.getenv("YOUTUBE_API_KEY")
MIRROR_INSTANCES = mirror.parse_instances(os.getenv("MIRROR_INSTANCES"))


def env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring non-integer %s=%r", name, raw)
        return default


STATS_CONCURRENCY = env_int("STATS_CONCURRENCY", DEFAULT_STATS_CONCURRENCY)


def parse_cors_origins() -> tuple[list[str], bool]:
    raw = (os.getenv("CORS_ALLOWED_ORIGINS") or "").strip()
    if not raw:
        return ["http://localhost:3000"], True
    if raw == "*":
        return ["*"], False
    origins = [origin.strip() for origin in raw.split(",") if origin.strip()]
    if not origins:
        return ["http://localhost:3000"], True
    return origins, True


def build_sources() -> list[VideoSource]:
    """Mirrors first (no quota), the official API as the authoritative fallback."""
    sources: list[VideoSource] = []
    if MIRROR_INSTANCES:
        sources.append(MirrorSource(MIRROR_INSTANCES, concurrency=STATS_CONCURRENCY))
    sources.append(YouTubeApiSource(YOUTUBE_API_KEY, concurrency=STATS_CONCURRENCY))
    return sources


# ---------------------------
# App setup
# ---------------------------

app = FastAPI(title="Channel Video Ranker")

cors_origins, cors_credentials = parse_cors_origins()

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=cors_credentials,
    allow_methods=["GET"],
    allow_headers=["*"],
)


@app.exception_handler(AggregationError)
async def aggregation_error_handler(_request: Request, exc: AggregationError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(_request: Request, exc: RequestValidationError):
    problems = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error.get("loc", ()) if part != "query")
        problems.append(f"{field}: {error.get('msg')}" if field else str(error.get("msg")))
    return JSONResponse(status_code=400, content={"error": "; ".join(problems) or "Invalid request"})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("API Error on %s", request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"error": "Internal Server Error"})


# ---------------------------
# Routes
# ---------------------------

@app.get("/health")
def health():
    return {"ok": True}


@app.get("/api/videos")
async def videos(
    channelUrl: str | None = None,
    sortMode: str = DEFAULT_SORT_MODE,
    maxVideos: int = DEFAULT_MAX_VIDEOS,
):
    ranked = await aggregate(channelUrl, sortMode, maxVideos, build_sources())
    return VideosResponse(data=ranked).model_dump()


@app.get("/api/resolve")
async def resolve(channelUrl: str | None = None):
    if not (channelUrl or "").strip():
        raise InvalidInput("Missing channelUrl param")
    identifier = parse_channel_url(channelUrl)
    if identifier is None:
        raise InvalidInput("Could not parse channel URL")
    if not identifier.is_channel_id and not YOUTUBE_API_KEY:
        raise MissingCredentialError()

    channel_id = await asyncio.to_thread(youtube_api.resolve_channel_id, identifier, YOUTUBE_API_KEY)
    return ResolveResponse(channelUrl=channelUrl, channelId=channel_id).model_dump()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=os.getenv("HOST", "127.0.0.1"), port=env_int("PORT", 8000))
