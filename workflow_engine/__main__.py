import uvicorn

from workflow_engine.core.config import settings


def main():
    """Start the engine's host server."""
    uvicorn.run("workflow_engine.main:app", host=settings.HOST, port=settings.PORT)


if __name__ == "__main__":
    main()
