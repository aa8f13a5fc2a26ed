import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from src.configuration.config import settings
from src.modules.recurring.services.recurring_scheduler import RecurringScheduler
from src.modules.step_up.controller import router as step_up_router
from src.modules.webhooks.controller import router as webhooks_router

description = """
## HushPay Agent

Private payments over SMS and WhatsApp.

### Endpoints

* **Webhooks**: inbound SMS (TwiML reply), inbound WhatsApp (async reply), wallet balance-change events
* **Step-up**: PIN confirmation page for payments at or above the threshold
* **Health**: Health endpoints to verify that the service is working.
"""

tags_metadata = [
    {
        "name": "webhooks",
        "description": "Inbound chat messages and wallet events.",
    },
    {
        "name": "step-up",
        "description": "PIN confirmation links sent in chat.",
    },
    {
        "name": "health",
        "description": "Health endpoints to verify that the service is working.",
    },
]

logger = logging.getLogger("uvicorn.error")


@asynccontextmanager
async def lifespan(app: FastAPI):
    scheduler = RecurringScheduler()
    app.state.scheduler = scheduler
    scheduler.start()

    docs_path = app.docs_url or "/docs"
    logger.info("Swagger UI available at %s", f"http://{settings.HOST}:{settings.PORT}{docs_path}")
    yield

    scheduler.stop()


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description=description,
    debug=settings.DEBUG,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    openapi_tags=tags_metadata,
    lifespan=lifespan,
)

app.include_router(webhooks_router)
app.include_router(step_up_router)


@app.get("/", tags=["health"])
def root():
    """Health endpoint to verify that the service is working."""
    return {"message": f"{settings.APP_NAME} running", "version": settings.APP_VERSION}


@app.get("/health", tags=["health"])
def health_check():
    """Health endpoint to verify that the service is working."""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "src.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level="info" if not settings.DEBUG else "debug",
    )
