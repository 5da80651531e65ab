import uvicorn

from .settings import settings


def main() -> int:
    """Serve the game API with uvicorn."""
    uvicorn.run(
        "mathgame.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
