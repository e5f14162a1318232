"""Application entrypoint for the FastAPI recommendation service."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import uvicorn
from fastapi import Depends, FastAPI, Header, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field, StrictInt
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.config import config
from app.core import (
    InvalidInput,
    LLMExplainer,
    PipelineSettings,
    RatedInput,
    RecommendationError,
    RecommendationPipeline,
    RecommendationRequest,
    VectorIndex,
    feedback_from_dict,
)
from app.logging import get_logger, setup_logging
from app.providers.embedding_client import EmbeddingClient
from app.storage import (
    MoviesRepo,
    SqlMovieCatalog,
    close_engine,
    get_session_factory,
    init_db,
)

setup_logging(config.log_level)
logger = get_logger(__name__)

# Shortest query answered by the title search
MIN_TITLE_QUERY_LENGTH = 2


class RatingPayload(BaseModel):
    """One rated movie."""

    title: str
    rating: StrictInt
    description: str | None = None


class FeedbackItemPayload(BaseModel):
    """A delivered recommendation marked more/less like this."""

    title: str
    categories: list[str] = Field(default_factory=list)


class FeedbackPayload(BaseModel):
    """Feedback accumulated by the caller across runs."""

    more: list[FeedbackItemPayload] = Field(default_factory=list)
    less: list[FeedbackItemPayload] = Field(default_factory=list)


class RecommendPayload(BaseModel):
    """Ratings request or single-description request."""

    model_config = ConfigDict(populate_by_name=True)

    ratings: list[RatingPayload] | None = None
    likes: str | None = None
    dislikes: str | None = None
    description: str | None = None
    match_count: StrictInt | None = Field(default=None, alias="matchCount")
    feedback: FeedbackPayload | None = None


async def verify_admin_token(
    authorization: str | None = Header(None, alias="Authorization"),
) -> None:
    """Verify admin token for protected endpoints.

    Raises:
        HTTPException: If token is invalid or missing
    """
    if not config.admin_token:
        raise HTTPException(
            status_code=503,
            detail="Admin endpoints not configured (ADMIN_TOKEN not set)",
        )

    if not authorization:
        raise HTTPException(status_code=401, detail="Authorization header required")

    # Support "Bearer <token>" or just "<token>"
    token = authorization
    if authorization.startswith("Bearer "):
        token = authorization[7:]

    if token != config.admin_token:
        raise HTTPException(status_code=403, detail="Invalid admin token")


async def rebuild_index(app: FastAPI) -> int:
    """Reload corpus embeddings into the in-memory vector index."""
    entries = await app.state.catalog.load_embeddings()
    return app.state.index.build(entries)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager for startup and shutdown events."""
    logger.info("Starting application")

    await init_db()

    app.state.catalog = SqlMovieCatalog(get_session_factory())
    app.state.index = VectorIndex(config.embedding_dimensions)
    await rebuild_index(app)

    embedder = EmbeddingClient(
        api_key=config.google_ai_api_key,
        model=config.embedding_model,
        dimensions=config.embedding_dimensions,
        timeout=config.embedding_timeout,
    )
    if not config.google_ai_api_key:
        logger.warning("GOOGLE_AI_API_KEY is not set; recommendation requests will fail")

    explainer = LLMExplainer(max_length=config.explanation_max_chars) if config.llm_enabled else None

    app.state.pipeline = RecommendationPipeline(
        embedder=embedder,
        index=app.state.index,
        catalog=app.state.catalog,
        explainer=explainer,
        settings=PipelineSettings.from_config(),
    )

    yield

    logger.info("Shutting down application")
    await embedder.close()
    await close_engine()


app = FastAPI(
    title="TasteMatch",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)


def _error_response(error: RecommendationError) -> JSONResponse:
    headers = {}
    retry_after = getattr(error, "retry_after", None)
    if retry_after:
        headers["Retry-After"] = str(retry_after)
    return JSONResponse(
        status_code=error.status_code,
        content={"error": error.message},
        headers=headers or None,
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed bodies as 400 with a single error string."""
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first.get('msg')}" if location else str(first.get("msg"))
    else:
        message = "Malformed request"
    return JSONResponse(status_code=400, content={"error": message})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render HTTP errors with the same single-field shape."""
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})


def get_pipeline(request: Request) -> RecommendationPipeline:
    """Dependency returning the pipeline built at startup."""
    pipeline = getattr(request.app.state, "pipeline", None)
    if pipeline is None:
        raise HTTPException(status_code=503, detail="Recommendation service is not ready")
    return pipeline


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Dependency yielding a database session."""
    session_factory = get_session_factory()
    async with session_factory() as session:
        yield session


@app.get("/health")
async def health_check() -> dict:
    """Health check endpoint."""
    return {"ok": True}


@app.post("/recommend-movies")
async def recommend_movies(
    payload: RecommendPayload,
    pipeline: RecommendationPipeline = Depends(get_pipeline),
) -> JSONResponse:
    """Recommend movies from ratings, or search by a single description."""
    try:
        if payload.ratings is not None:
            request = RecommendationRequest(
                ratings=[
                    RatedInput(title=r.title.strip(), rating=r.rating, description=r.description)
                    for r in payload.ratings
                ],
                likes=payload.likes,
                dislikes=payload.dislikes,
                match_count=(
                    payload.match_count
                    if payload.match_count is not None
                    else config.recs_default_match_count
                ),
                feedback=feedback_from_dict(
                    payload.feedback.model_dump() if payload.feedback else None
                ),
            )
            recommendations = await pipeline.recommend(request)
            return JSONResponse(
                content={"recommendations": [r.to_dict() for r in recommendations]}
            )

        if payload.description is not None:
            if payload.match_count is None:
                raise InvalidInput("description and matchCount are required")
            candidates = await pipeline.search(payload.description, payload.match_count)
            return JSONResponse(
                content={
                    "movies": [
                        {**c.movie.to_dict(), "similarity": c.similarity}
                        for c in candidates
                    ]
                }
            )

        raise InvalidInput("Either ratings or description is required")

    except RecommendationError as e:
        if e.status_code >= 500:
            logger.error(f"recommend-movies failed: {e.message}")
        else:
            logger.info(f"recommend-movies rejected ({e.status_code}): {e.message}")
        return _error_response(e)

    except Exception as e:
        logger.exception(f"recommend-movies error: {e}")
        return JSONResponse(
            status_code=500,
            content={"error": str(e) or "Unknown error"},
        )


@app.get("/movies/titles")
async def movie_titles(
    q: str = "",
    session: AsyncSession = Depends(get_session),
) -> dict:
    """Suggest catalog titles and report whether the query matches one exactly."""
    query = q.strip()
    if len(query) < MIN_TITLE_QUERY_LENGTH:
        return {"titles": [], "exact_match": False}

    repo = MoviesRepo(session)
    titles = await repo.search_titles(query)
    exact = await repo.find_by_titles([query])

    return {"titles": titles, "exact_match": bool(exact)}


@app.post("/admin/movies/seed")
async def seed_movies(
    request: Request,
    _: None = Depends(verify_admin_token),
) -> dict:
    """Load corpus movies from a CSV request body."""
    from app.jobs import run_seed_movies

    body = await request.body()
    logger.info(f"Admin triggered movie seed ({len(body)} bytes)")

    try:
        stats = await run_seed_movies(body.decode("utf-8"))
    except UnicodeDecodeError:
        raise HTTPException(status_code=400, detail="CSV body must be UTF-8")
    except Exception as e:
        logger.exception(f"Movie seed failed: {e}")
        raise HTTPException(status_code=500, detail=f"Seed failed: {str(e)[:200]}")

    return {
        "ok": True,
        "parsed": stats.parsed,
        "skipped": stats.skipped,
        "duration_seconds": stats.duration_seconds,
    }


@app.post("/admin/embeddings/import")
async def import_embeddings(
    request: Request,
    _: None = Depends(verify_admin_token),
) -> dict:
    """Import precomputed embeddings and rebuild the vector index."""
    from app.jobs import EmbeddingImportError, run_update_embeddings

    logger.info("Admin triggered embedding import")

    try:
        stats = await run_update_embeddings(await request.body())
    except EmbeddingImportError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.exception(f"Embedding import failed: {e}")
        raise HTTPException(status_code=500, detail=f"Import failed: {str(e)[:200]}")

    indexed = await rebuild_index(request.app) if hasattr(request.app.state, "index") else 0
    return {"ok": True, **stats.to_dict(), "indexed": indexed}


@app.get("/admin/stats")
async def get_stats(
    session: AsyncSession = Depends(get_session),
    _: None = Depends(verify_admin_token),
) -> dict:
    """Return corpus statistics."""
    repo = MoviesRepo(session)
    return {
        "movies": {
            "total": await repo.count_movies(),
            "embedded": await repo.count_movies(embedded_only=True),
        },
    }


def main() -> None:
    """Run the API server."""
    logger.info(f"Starting FastAPI server on {config.host}:{config.port}")
    uvicorn.run(
        "app.main:app",
        host=config.host,
        port=config.port,
        reload=False,
    )


if __name__ == "__main__":
    main()
