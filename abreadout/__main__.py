import uvicorn

from abreadout.config import get_settings


def main():
    settings = get_settings()
    uvicorn.run(
        "abreadout.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG and settings.ENVIRONMENT == "development",
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
