"""chatapp backend.

Run with:
  python -m chatapp

CHATAPP_SECRET_KEY must be set; the app is built through ``create_app`` so
nothing reads the environment until uvicorn starts it.
"""

import os

import uvicorn

from chatapp.config import _flag


def main() -> None:
    uvicorn.run(
        "chatapp.app:create_app",
        factory=True,
        host=os.getenv("CHATAPP_HOST", "0.0.0.0"),
        port=int(os.getenv("CHATAPP_PORT", "5055")),
        reload=_flag(os.getenv("CHATAPP_RELOAD", "false")),
        log_level=os.getenv("LOG_LEVEL", "INFO").lower(),
        proxy_headers=_flag(os.getenv("CHATAPP_PROXY_HEADERS", "false")),
    )


if __name__ == "__main__":
    main()
