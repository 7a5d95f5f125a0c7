import logging
import os

import uvicorn


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in {"1", "true", "yes", "on"}


def main() -> None:
    host = os.getenv("HOST", "127.0.0.1")
    port = int(os.getenv("PORT", "8080"))
    log_level = os.getenv("LOG_LEVEL", "info")

    # Application loggers (invbill.*) share uvicorn's level and format.
    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Worker threads for sync endpoints come from Starlette's thread pool;
    # password hashing runs there rather than on the event loop.
    uvicorn.run(
        "invbill.main:app",
        host=host,
        port=port,
        reload=_env_flag("RELOAD"),
        log_level=log_level,
        proxy_headers=_env_flag("PROXY_HEADERS", "true"),
        forwarded_allow_ips=os.getenv("FORWARDED_ALLOW_IPS", "127.0.0.1"),
    )


if __name__ == "__main__":
    main()
