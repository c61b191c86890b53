"""
FastAPI server exposing the movie recommender API.
Endpoints:
- GET /health: basic health check
- GET /api/v1/movies?page=1&limit=20: lean, paginated movie list (vector store)
- GET /api/v1/movies/{id}: full movie metadata (document store)
- GET /api/v1/movies/{id}/recommendations?limit=10: similar movies (vector store)

Every error response has the shape {success: false, statusCode, message}.

Run:  uvicorn api:app --reload
"""

# Import standard libraries for timing and body checks
import json  # validate JSON request bodies
import time  # measure startup latency
from typing import Any, List, Optional  # precise typing for clarity

# Import FastAPI for building the web API and Pydantic for response models
from fastapi import FastAPI, Request  # FastAPI primitives
from fastapi.exceptions import RequestValidationError  # malformed requests
from fastapi.middleware.cors import CORSMiddleware  # browser access from the SPA
from fastapi.responses import JSONResponse  # custom error bodies
from pydantic import BaseModel  # response schema definitions
from starlette.exceptions import HTTPException as StarletteHTTPException  # unmatched routes

# Import our internal modules for configuration, stores and queries
from recommender.catalog import (  # read-only query façade
	DEFAULT_PAGE_LIMIT,
	DEFAULT_RECOMMENDATION_LIMIT,
	MovieCatalog,
	parse_int_param,
)
from recommender.config import Settings, configure_logging  # environment settings
from recommender.document_store import FirestoreDocumentStore  # Firestore adapter
from recommender.errors import RecommenderError, UpstreamError  # domain errors
from recommender.vector_store import QdrantVectorStore  # Qdrant adapter

# Import loguru for simple, structured console logging
from loguru import logger  # convenient console logger

SETTINGS = Settings.from_env()  # read once at import

# Instantiate the FastAPI application with metadata
app = FastAPI(title="Movies Recommender API", version="1.0.0")  # web app
app.add_middleware(
	CORSMiddleware,
	allow_origins=SETTINGS.cors_origins,
	allow_methods=["GET"],
	allow_headers=["*"],
)

# Globals that hold the catalog instance and measured startup time
CATALOG: Optional[MovieCatalog] = None  # set on startup (or by tests)
STARTUP_TIME_S: float = 0.0  # measures how long startup took
INVALID_JSON_MESSAGE = "Invalid JSON payload. Please check your request body format."


# Pydantic model for a lean movie entry in list responses
class MovieOut(BaseModel):
	id: int
	title: Optional[str] = None
	posterUrl: Optional[str] = None
	voteAverage: Optional[float] = None


# Pydantic model for a single ranked recommendation
class RecommendationOut(BaseModel):
	id: int
	score: float  # similarity to the seed movie
	title: Optional[str] = None
	posterUrl: Optional[str] = None
	voteAverage: Optional[float] = None


# Standard success envelope
class ApiResponse(BaseModel):
	success: bool = True
	statusCode: int = 200
	message: str
	data: Any = None


def error_response(status_code: int, message: str) -> JSONResponse:
	"""Build the uniform error envelope."""
	return JSONResponse(
		status_code=status_code,
		content={"success": False, "statusCode": status_code, "message": message},
	)


@app.exception_handler(RecommenderError)
async def recommender_error_handler(request: Request, exc: RecommenderError):
	if exc.status_code >= 500:
		logger.error(f"[API] {request.method} {request.url.path} failed: {exc.message}")
	return error_response(exc.status_code, exc.message)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
	if exc.status_code == 404:
		return error_response(404, f"Route not found: {request.method} {request.url.path}")
	return error_response(exc.status_code, str(exc.detail))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
	return error_response(400, "Invalid request parameters")


@app.middleware("http")
async def reject_malformed_json(request: Request, call_next):
	"""Answer 400 for any request whose JSON body does not parse, before routing."""
	content_type = request.headers.get("content-type", "").split(";")[0].strip().lower()
	if content_type == "application/json" or content_type.endswith("+json"):
		body = await request.body()
		if body.strip():
			try:
				json.loads(body)
			except ValueError:
				return error_response(400, INVALID_JSON_MESSAGE)
	return await call_next(request)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
	logger.exception(f"[API] Unhandled error on {request.method} {request.url.path}: {exc}")
	return error_response(500, "Internal Server Error")


# FastAPI startup hook to connect both stores once
@app.on_event("startup")
async def startup_event():
	"""Initialize the store adapters and log how long it took."""
	global CATALOG, STARTUP_TIME_S  # refer to module-level globals
	start = time.time()  # start timer for startup latency
	configure_logging(SETTINGS.log_level)

	logger.info("[API] Startup: connecting to Qdrant and Firestore...")
	vector_store = QdrantVectorStore(host=SETTINGS.qdrant_host, port=SETTINGS.qdrant_port)
	document_store = FirestoreDocumentStore(
		app_id=SETTINGS.firebase_app_id,
		collection_name=SETTINGS.firebase_collection_name,
		service_account_file=SETTINGS.firebase_service_account_file,
	)
	CATALOG = MovieCatalog(vector_store, document_store, collection_name=SETTINGS.qdrant_collection_name)

	STARTUP_TIME_S = time.time() - start  # elapsed seconds
	logger.info(f"[API] Startup complete in {STARTUP_TIME_S:.2f}s.")


def get_catalog() -> MovieCatalog:
	if CATALOG is None:
		logger.warning("[API] Request received but catalog not initialized")
		raise UpstreamError("Service is not ready")
	return CATALOG


@app.get("/")
async def root():
	return {"message": "Movies Recommender API"}


# Simple health endpoint for readiness checks
@app.get("/health")
async def health():
	"""Return minimal health info for liveness/readiness probes."""
	return {
		"status": "ok",  # constant indicator
		"catalog_ready": CATALOG is not None,  # True if stores connected
		"startup_seconds": round(STARTUP_TIME_S, 2)  # startup latency
	}


@app.get("/api/v1/movies", response_model=ApiResponse)
def list_movies(page: Optional[str] = None, limit: Optional[str] = None):
	"""Paginated list of movies with lean data."""
	page_num = parse_int_param(page, "page", default=1)
	limit_num = parse_int_param(limit, "limit", default=DEFAULT_PAGE_LIMIT)

	movies = get_catalog().list_movies(page_num, limit_num)
	items: List[MovieOut] = [
		MovieOut(id=m.id, title=m.title, posterUrl=m.poster_url, voteAverage=m.vote_average)
		for m in movies
	]
	logger.debug(f"[API] /movies page={page_num} limit={limit_num} -> {len(items)} items")
	return ApiResponse(message="Movies fetched successfully", data=items)


@app.get("/api/v1/movies/{movie_id}", response_model=ApiResponse)
def get_movie(movie_id: str):
	"""Full metadata for one movie."""
	movie = get_catalog().get_movie(parse_int_param(movie_id, "Movie ID"))
	return ApiResponse(message="Movie fetched successfully", data=movie)


@app.get("/api/v1/movies/{movie_id}/recommendations", response_model=ApiResponse)
def get_recommendations(movie_id: str, limit: Optional[str] = None):
	"""Movies similar to the given one, best match first."""
	seed_id = parse_int_param(movie_id, "Movie ID")
	limit_num = parse_int_param(limit, "limit", default=DEFAULT_RECOMMENDATION_LIMIT)

	recommendations = get_catalog().recommendations(seed_id, limit_num)
	items: List[RecommendationOut] = [
		RecommendationOut(
			id=r.id,
			score=r.score,
			title=r.title,
			posterUrl=r.poster_url,
			voteAverage=r.vote_average,
		)
		for r in recommendations
	]
	return ApiResponse(message="Recommendations fetched successfully", data=items)


if __name__ == '__main__':
	import uvicorn  # ASGI server

	uvicorn.run("api:app", host="0.0.0.0", port=SETTINGS.port)
