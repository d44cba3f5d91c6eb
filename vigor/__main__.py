"""Run the Vigor live-events server: python3 -m vigor"""

import uvicorn

from vigor.config import settings


def main() -> None:
    uvicorn.run("vigor.api.app:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
