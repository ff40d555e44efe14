import logging

from fastapi import FastAPI

from .db import Base, engine, ensure_schema
from .gemini_client import GeminiClient
from .orchestrator import PlacementOrchestrator
from .question_source import build_question_source
from .settings import settings
from .routers import health
from .routers import auth
from .routers import placement

logging.basicConfig(
	level=getattr(logging, settings.log_level.upper(), logging.INFO),
	format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Placement Agent API")
app.include_router(health.router)
app.include_router(auth.router)
app.include_router(placement.router)


@app.get("/info")
def root():
	return {
		"status": "ok",
		"gemini_configured": bool(settings.gemini_api_key),
		"ai_enabled": settings.ai_enabled,
		"total_questions": settings.placement_total_questions,
	}


def _build_gemini_client():
	if not settings.ai_enabled or not settings.gemini_api_key:
		return None
	try:
		return GeminiClient()
	except ValueError as exc:
		logger.warning("Gemini client unavailable: %s", exc)
		return None


@app.on_event("startup")
async def startup_event():
	Base.metadata.create_all(bind=engine)
	# Apply lightweight dev migrations
	try:
		ensure_schema()
	except Exception:
		logger.exception("Schema migration failed")
	client = _build_gemini_client()
	app.state.gemini_client = client
	app.state.orchestrator = PlacementOrchestrator(
		build_question_source(
			client,
			timeout=settings.ai_timeout_seconds,
			strict_answers=settings.ai_strict_answers,
		),
		total_questions=settings.placement_total_questions,
		seed_difficulty=settings.placement_seed_difficulty,
	)


@app.on_event("shutdown")
async def shutdown_event():
	client = getattr(app.state, "gemini_client", None)
	if client is not None:
		await client.aclose()
