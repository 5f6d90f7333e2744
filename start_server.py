"""Startup script for container deployment."""
import uvicorn

from flagsync import config

if __name__ == "__main__":
    print(f"Starting uvicorn on port {config.PORT}", flush=True)
    uvicorn.run(
        "flagsync.app:app",
        host="0.0.0.0",
        port=config.PORT,
        log_level="info",
    )
