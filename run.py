import os
import uvicorn

from app.config import get_settings

if __name__ == "__main__":
    print("--- REAL-TIME POP SERVICE STARTUP ---")

    # Dump environment (redacted)
    for k, v in os.environ.items():
        if any(
            secret in k.lower() for secret in ["key", "pass", "secret", "url", "token"]
        ):
            print(f"{k}: [REDACTED]")
        else:
            print(f"{k}: {v}")

    settings = get_settings()

    print(f"Invoking uvicorn on {settings.host}:{settings.port}")
    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        access_log=True,
    )
