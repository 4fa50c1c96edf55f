import logging
from fastapi import FastAPI

from .config import LOG_LEVEL
from .database import engine, Base
from .routes import users, schedule, sink, regen_pod
from .scheduling import __version__

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

# Create database tables
Base.metadata.create_all(bind=engine)

# Create FastAPI app
app = FastAPI(
    title="AetherFlow API",
    description="Energy-aware daily scheduling with quick-add parsing, compaction and an Aether Sink backlog",
    version=__version__
)

# Include routers
app.include_router(users.router, prefix="/users", tags=["users"])
app.include_router(schedule.router, prefix="/schedule", tags=["schedule"])
app.include_router(sink.router, prefix="/sink", tags=["sink"])
app.include_router(regen_pod.router, prefix="/regen-pod", tags=["regen-pod"])

@app.get("/")
def read_root():
    """Root endpoint with API information"""
    return {
        "message": "Welcome to AetherFlow API",
        "version": __version__,
        "endpoints": {
            "register": "POST /users/register - Create a new profile",
            "login": "POST /users/login - Login with username and password",
            "schedule": "GET /schedule/?day=YYYY-MM-DD - Formatted schedule and free gaps",
            "quick_add": "POST /schedule/quick-add - Add a task from text",
            "compact": "POST /schedule/compact - Re-pack flexible tasks",
            "sink": "GET/POST /sink/ - Aether Sink backlog",
        },
        "authentication": "Bearer token in Authorization header",
        "swagger_ui": "/docs - Interactive API documentation",
    }

@app.get("/health")
def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "message": "API is running"}

# This allows running the app directly with: python -m aetherflow.main
if __name__ == "__main__":
    import uvicorn
    uvicorn.run("aetherflow.main:app", host="0.0.0.0", port=8000, reload=True)
