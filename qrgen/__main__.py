import uvicorn

from .core.config import settings

if __name__ == "__main__":
    uvicorn.run("qrgen.main:app", host=settings.HOST, port=settings.PORT, log_config=None)
