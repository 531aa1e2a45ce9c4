from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from bus_booking.config import settings
from bus_booking.database import init_db
from bus_booking.exceptions import register_exception_handlers
from bus_booking.logging_config import configure_logging
from bus_booking.auth.router import router as auth_router
from bus_booking.buses import router as buses_router
from bus_booking.bookings.router import router as bookings_router
from bus_booking.notifications import shutdown_dispatcher

@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    init_db()
    logger.info(f"{settings.PROJECT_NAME} started ({settings.ENVIRONMENT})")
    yield
    shutdown_dispatcher()

def create_app(lifespan=lifespan) -> FastAPI:
    app = FastAPI(
        title=settings.PROJECT_NAME,
        version="1.0.0",
        description="Bus ticket booking API",
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
    
    register_exception_handlers(app)
    
    # Include routers
    app.include_router(auth_router, prefix=settings.API_PREFIX, tags=["Authentication"])
    app.include_router(buses_router, prefix=settings.API_PREFIX, tags=["Buses"])
    app.include_router(bookings_router, prefix=settings.API_PREFIX, tags=["Booking & Ticketing"])
    
    @app.get("/")
    def root():
        """Root endpoint"""
        return {
            "message": "Bus Booking API",
            "version": "1.0.0",
            "docs": "/docs"
        }
    
    @app.get("/health")
    def health_check():
        """Health check endpoint"""
        return {"status": "healthy"}
    
    return app

app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
