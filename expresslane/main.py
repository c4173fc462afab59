import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from expresslane import __version__
from expresslane.config import settings
from expresslane.database import Base, engine
from expresslane.auth import router as auth_router
from expresslane.tolls import router as tolls_router
from expresslane.bookings import router as bookings_router
from expresslane.bookings.sweeper import ExpirySweeper
from expresslane.ledger import router as ledger_router
from expresslane.admin import router as admin_router

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    Base.metadata.create_all(bind=engine)
    
    sweeper = None
    if settings.SWEEP_ENABLED:
        sweeper = ExpirySweeper(interval=settings.SWEEP_INTERVAL_SECONDS)
        sweeper.start()
    
    yield
    
    if sweeper is not None:
        await sweeper.stop()

# Create FastAPI app
app = FastAPI(
    title=settings.PROJECT_NAME,
    version=__version__,
    description="Highway toll express lane pre-booking API",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(
    auth_router.router,
    prefix=f"{settings.API_V1_STR}/auth",
    tags=["Authentication"]
)

app.include_router(
    tolls_router.router,
    prefix=f"{settings.API_V1_STR}/tolls",
    tags=["Toll Booths"]
)

app.include_router(
    bookings_router.router,
    prefix=f"{settings.API_V1_STR}/bookings",
    tags=["Bookings"]
)

app.include_router(
    ledger_router.router,
    prefix=f"{settings.API_V1_STR}/ledger",
    tags=["Ledger"]
)

app.include_router(admin_router.router)

@app.get("/")
def root():
    """Root endpoint"""
    return {
        "message": "Highway Express Lane Booking API",
        "version": __version__,
        "docs": "/docs"
    }

@app.get("/health")
def health_check():
    """Health check endpoint"""
    return {"status": "healthy"}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
