import uvicorn

from app import create_app
from core.config import settings

app = create_app()


if __name__ == "__main__":
    # Access lines come from the request-id middleware
    uvicorn.run(
        "main:app",
        host=settings.server.host,
        port=settings.server.port,
        reload=settings.server.reload,
        log_level=settings.logging.level.lower(),
        access_log=False,
        proxy_headers=True,
    )
