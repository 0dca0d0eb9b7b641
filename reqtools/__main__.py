# reqtools/__main__.py
import os

import uvicorn


def main() -> None:
    uvicorn.run(
        "reqtools.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8080")),
        workers=int(os.getenv("WEB_CONCURRENCY", "1")),
        log_config=None,  # structlog owns the handlers
    )


if __name__ == "__main__":
    main()
