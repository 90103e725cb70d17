"""Run the voice gateway with uvicorn."""

import uvicorn

from voice_gateway.config import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        "voice_gateway.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level,
        reload=settings.debug,
    )


if __name__ == "__main__":
    main()
