"""
FastAPI application entry point.

Operator API for inspecting a clustered job store.

Optional API key authentication via API_AUTH_ENABLED.
"""

from contextlib import asynccontextmanager
from dotenv import load_dotenv
from fastapi import Depends, FastAPI

from src import __version__
from .routers import jobs, stats, triggers
from ._store_state import init_job_store, shutdown_job_store
from .dependencies.auth import verify_api_key, API_AUTH_ENABLED


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Connects the job store from the JOBSTORE_* environment on startup and
    closes its HTTP client on shutdown. A .env file is honoured.
    """
    load_dotenv()
    init_job_store()

    yield

    shutdown_job_store()

# Tag metadata for Swagger UI
tags_metadata = [
    {
        "name": "stats",
        "description": "Job and trigger document counts",
    },
    {
        "name": "jobs",
        "description": "Stored job definitions - read, remove, and list their triggers",
    },
    {
        "name": "triggers",
        "description": "Stored triggers - read state and version, release stuck acquisitions",
    },
]

app = FastAPI(
    title="Clustered Job Store API",
    lifespan=lifespan,
    description="""
## Clustered Job Store API

Operator API over the document store that scheduler nodes share.

### Authentication
When `API_AUTH_ENABLED=true`, all endpoints except `/health` require
an `X-API-Key` header matching the `API_KEY` environment variable.

### Usage
```bash
# Start server
JOBSTORE_HOST=localhost JOBSTORE_INDEX=scheduler \\
  uvicorn src.api.main:app --host 127.0.0.1 --port 8000

# Release a trigger left ACQUIRED by a crashed node
curl -X POST http://localhost:8000/triggers/Group1/Trigger1/release \\
  -H "X-API-Key: your-api-key"
```
    """,
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=tags_metadata,
)

# Health check - NO authentication (operational endpoint)
@app.get("/health")
async def health_check():
    """Health check endpoint. Not authenticated."""
    return {"status": "ok", "version": __version__}


# Include routers WITH authentication dependency (when enabled)
auth_dependency = [Depends(verify_api_key)] if API_AUTH_ENABLED else []

app.include_router(
    stats.router, prefix="/stats", tags=["stats"], dependencies=auth_dependency
)
app.include_router(
    jobs.router, prefix="/jobs", tags=["jobs"], dependencies=auth_dependency
)
app.include_router(
    triggers.router, prefix="/triggers", tags=["triggers"], dependencies=auth_dependency
)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="127.0.0.1", port=8000)
