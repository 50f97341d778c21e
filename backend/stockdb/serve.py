import argparse
import logging
import os
from typing import Dict, List, Optional

import uvicorn

APP_PATH = "stockdb.main:app"


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in {"1", "true", "yes", "on"}


def _ssl_options() -> Dict[str, str]:
    options: Dict[str, str] = {}
    for env_name, option in (
        ("SSL_CERTFILE", "ssl_certfile"),
        ("SSL_KEYFILE", "ssl_keyfile"),
        ("SSL_KEYFILE_PASSWORD", "ssl_keyfile_password"),
        ("SSL_CA_CERTS", "ssl_ca_certs"),
    ):
        value = os.getenv(env_name)
        if value:
            options[option] = value
    return options


def _configure_app_logging(level: str) -> None:
    # uvicorn only configures its own loggers; service logs go through "stockdb".
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logging.getLogger("stockdb").setLevel(level.upper())


def _parse_args(argv: Optional[List[str]]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the stock control API.")
    parser.add_argument("--host", default=os.getenv("HOST", "0.0.0.0"))
    parser.add_argument("--port", type=int, default=int(os.getenv("PORT", "8000")))
    parser.add_argument("--reload", action="store_true", default=_env_flag("RELOAD"))
    parser.add_argument("--log-level", default=os.getenv("LOG_LEVEL", "info"))
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> None:
    args = _parse_args(argv)
    _configure_app_logging(args.log_level)

    uvicorn.run(
        APP_PATH,
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=args.log_level.lower(),
        proxy_headers=True,
        forwarded_allow_ips=os.getenv("FORWARDED_ALLOW_IPS", "*"),
        **_ssl_options(),
    )


if __name__ == "__main__":
    main()
