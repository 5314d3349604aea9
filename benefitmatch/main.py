import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from benefitmatch.config import settings
from benefitmatch.routes.eligibility import router as eligibility_router

# Configure logging
logging.basicConfig(level=settings.log_level.upper())
logger = logging.getLogger(__name__)


app = FastAPI(
    title=settings.app_name,
    description="Rule evaluation and eligibility classification for assistance programs",
    version=settings.app_version,
    debug=settings.debug
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins_list(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
async def root():
    return {"message": f"{settings.app_name} is running", "version": settings.app_version}


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "service": "benefitmatch"}


app.include_router(eligibility_router)
app.include_router(eligibility_router, prefix=settings.api_prefix)

logger.info(f"{settings.app_name} {settings.app_version} initialised")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("benefitmatch.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
