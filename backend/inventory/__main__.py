"""Run the API with uvicorn on the configured port"""
import uvicorn

from inventory.core.config import settings


def main():
    uvicorn.run("inventory.main:app", host=settings.HOST, port=settings.PORT)


if __name__ == "__main__":
    main()
