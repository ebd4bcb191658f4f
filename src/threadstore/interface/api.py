"""
FastAPI backend for the astronaut list page.

Provides REST endpoints for:
- Listing astronauts
- Creating an astronaut from the form fields
- Fetching and deleting a single astronaut

The page keeps its own list; after create/delete it merges the returned
record or identifier into that list itself.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from threadstore.core.config import Settings, get_logger, settings as default_settings
from threadstore.core.exceptions import ConflictError, NotFoundError, StoreUnavailableError
from threadstore.core.types import Astronaut
from threadstore.storage import DatabaseClient, RecordStore, open_client

logger = get_logger("api")


# ==========================================
# Request/Response Models
# ==========================================

class CreateAstronautRequest(BaseModel):
    name: str = Field(min_length=1)
    missions: int = Field(default=0, ge=0)


class DeleteResponse(BaseModel):
    id: str


def create_app(
    settings: Settings | None = None,
    client: DatabaseClient | None = None,
) -> FastAPI:
    """
    Build the API app.

    When ``client`` is given it is used as-is and left open on shutdown;
    otherwise one is opened from ``settings`` and closed with the app.
    """
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = client is None
        db = client or await open_client(settings)
        app.state.store = RecordStore(
            db,
            thread_name=settings.thread_name,
            collection_name=settings.collection_name,
            model=Astronaut,
        )
        logger.info(f"Serving {settings.thread_name}/{settings.collection_name}")
        try:
            yield
        finally:
            if owned:
                await db.close()

    app = FastAPI(
        title="threadstore API",
        description="Astronaut records in a thread database",
        version="0.1.0",
        lifespan=lifespan,
    )

    # CORS for frontend
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    def store_of(request: Request) -> RecordStore[Astronaut]:
        return request.app.state.store

    # Store errors surface unchanged, only translated to a status code
    @app.exception_handler(NotFoundError)
    async def not_found(request: Request, exc: NotFoundError):
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(ConflictError)
    async def conflict(request: Request, exc: ConflictError):
        return JSONResponse(status_code=409, content={"detail": str(exc)})

    @app.exception_handler(StoreUnavailableError)
    async def unavailable(request: Request, exc: StoreUnavailableError):
        logger.warning(f"Store unavailable: {exc}")
        return JSONResponse(status_code=503, content={"detail": str(exc)})

    @app.get("/health")
    async def health():
        return {"status": "ok", "backend": settings.backend}

    @app.get("/astronauts", response_model=list[Astronaut])
    async def list_astronauts(request: Request):
        return await store_of(request).find_all()

    @app.post("/astronauts", response_model=Astronaut, status_code=201)
    async def create_astronaut(body: CreateAstronautRequest, request: Request):
        astronaut = Astronaut(name=body.name, missions=body.missions)
        astronaut.id = await store_of(request).create(astronaut)
        return astronaut

    @app.get("/astronauts/{instance_id}", response_model=Astronaut)
    async def get_astronaut(instance_id: str, request: Request):
        return await store_of(request).find_by_id(instance_id)

    @app.delete("/astronauts/{instance_id}", response_model=DeleteResponse)
    async def delete_astronaut(instance_id: str, request: Request):
        if not instance_id.strip():
            raise HTTPException(status_code=400, detail="Missing astronaut id")
        return DeleteResponse(id=await store_of(request).delete_by_id(instance_id))

    return app


def main() -> None:
    """Run the API with uvicorn."""
    import uvicorn

    from threadstore.core.config import setup_logging

    setup_logging()
    uvicorn.run(create_app(), host=default_settings.api_host, port=default_settings.api_port)


if __name__ == "__main__":
    main()
