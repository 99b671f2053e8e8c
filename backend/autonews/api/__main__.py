"""API server entry point for python -m autonews.api"""
import uvicorn
from autonews.config import settings

if __name__ == "__main__":
    uvicorn.run(
        "autonews.api.app:app",
        host=settings.server.host,
        port=settings.server.port,
        reload=False,
    )
