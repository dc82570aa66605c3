import uvicorn

from guestbook.config import settings


def main() -> None:
    uvicorn.run("guestbook.main:app", host=settings.HOST, port=settings.PORT)


if __name__ == "__main__":
    main()
