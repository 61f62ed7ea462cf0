from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from app.core.config import settings
from app.core.errors import BookingAPIError, register_error_handlers
from app.api import bookings
from app.api.bookings import get_booking_service
from app.core.logger import setup_logging, logger
from app.services.booking_service import BookingService
from app.services.db_service import db_service
from contextlib import asynccontextmanager
from datetime import datetime

setup_logging()

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info("🚀 Starting booking API")
    try:
        await db_service.get_client()
    except BookingAPIError as e:
        # Requests retry the connection lazily
        logger.warning(f"⚠️ Store not ready at startup: {e.message}")
    yield
    # Shutdown
    await db_service.close()
    logger.info("🛑 Shutting down backend")

app = FastAPI(
    title=settings.PROJECT_NAME,
    version="0.1.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)

# Include routers
app.include_router(bookings.router, prefix=settings.API_PREFIX, tags=["Bookings"])

@app.get("/")
async def root():
    return {'status': 'active', 'time': datetime.now().isoformat()}

@app.get("/health")
async def health_check(service: BookingService = Depends(get_booking_service)):
    try:
        await service.check_store()
    except BookingAPIError as e:
        logger.error(f"❌ Health check DB error: {e.message}")
        return JSONResponse(status_code=500, content={"ok": False, "error": e.message})
    return {"ok": True, "store": "connected", "environment": settings.ENVIRONMENT, "timestamp": datetime.now().isoformat()}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("app.main:app", host="0.0.0.0", port=settings.PORT, reload=True)
