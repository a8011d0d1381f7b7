"""Run the Pathshala API with uvicorn.

``ENV=dev`` (the default) serves on localhost with auto-reload; any other
value binds all interfaces on ``$PORT`` for the hosting platform.
"""

import logging
import os

import uvicorn

from pathshala.core.config import get_settings


def main() -> None:
    settings = get_settings()
    dev = os.environ.get("ENV", "dev") == "dev"
    port = int(os.environ.get("PORT", 8000))
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    if not settings.supabase_url:
        logging.getLogger("server").warning("server.no_supabase_url env=%s", "dev" if dev else "prod")

    uvicorn.run(
        "pathshala.main:app",
        host="127.0.0.1" if dev else "0.0.0.0",
        port=port,
        reload=dev,
        log_level="debug" if settings.debug else "info",
    )


if __name__ == "__main__":
    main()
