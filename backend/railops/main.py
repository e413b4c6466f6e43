from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.envelope import register_error_handlers
from .api.routes import trains, weather, safety, stations, ai, metrics
from .core.scheduler import BackgroundTicker
from .core.state import RailwayState
import logging
from typing import Optional

from .core.config import settings

# Configure logging
logging.basicConfig(
	level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
	format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def create_app(state: Optional[RailwayState] = None, start_background: Optional[bool] = None) -> FastAPI:

	app = FastAPI(
		title=settings.APP_NAME,
		description="Railway operations decision-support backend (FastAPI)",
		version="0.1.0",
	)

	# Wildcard origins with credentials is not permitted by browsers
	app.add_middleware(
		CORSMiddleware,
		allow_origins=settings.cors_origins,
		allow_credentials=True,
		allow_methods=["*"],
		allow_headers=["*"],
	)
	register_error_handlers(app)

	app.state.railway = state or RailwayState.build(seed=settings.MOCK_SEED)
	if start_background is None:
		start_background = settings.ENABLE_BACKGROUND_TASKS
	app.state.ticker = BackgroundTicker(app.state.railway)

	for module in (trains, weather, safety, stations, ai, metrics):
		app.include_router(module.router, prefix=settings.API_PREFIX)

	@app.on_event("startup")
	async def on_startup() -> None:
		logger.info(f"Starting {settings.APP_NAME} (ENV={settings.ENV}, API_PREFIX={settings.API_PREFIX})")
		if start_background:
			app.state.ticker.start()
		else:
			logger.info("Background tasks disabled")

	@app.on_event("shutdown")
	async def on_shutdown() -> None:
		await app.state.ticker.stop()

	@app.get("/health")
	def health() -> dict:
		return {"status": "ok"}

	@app.get("/")
	def root() -> dict:
		return {"message": f"{settings.APP_NAME} backend is running"}

	return app


app = create_app()
