from prometheus_fastapi_instrumentator import Instrumentator

from . import create_app
from .core.config import settings
from .core.logging import configure_logging

configure_logging(settings.LOG_LEVEL)
app = create_app(settings)
Instrumentator().instrument(app).expose(app, include_in_schema=False)


@app.get("/health")
async def health() -> dict[str, bool]:
    return {"ok": True}
