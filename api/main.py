from contextlib import asynccontextmanager

from fastapi import FastAPI

from core import db, queue
from core.log_config import configure_logging
from realms import router as realms_router
from realms import service as realms_service


@asynccontextmanager
async def lifespan(_: FastAPI):
    configure_logging()
    # Initialize the DB pool once per process, then start consuming messages.
    await db.init_pool()
    await queue.init_queue(realms_service.consume_batch)
    try:
        yield
    finally:
        # Stop consuming before the pool goes away.
        await queue.close_queue()
        await db.close_pool()


app = FastAPI(lifespan=lifespan)

app.include_router(realms_router, tags=["realms"])


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}


@app.get("/")
def root() -> dict:
    return {"message": "realm-indexer api"}
