"""
Entry point for the Synapse HTTP service.

Run with:
    uvicorn synapse.api.main:app --reload --port 8200
    python main.py
"""
import uvicorn

from synapse.config import get_settings

settings = get_settings()

if __name__ == "__main__":
    uvicorn.run(
        "synapse.api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=True,
        log_level=settings.log_level.lower(),
    )
