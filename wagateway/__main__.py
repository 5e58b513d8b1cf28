from typing import Optional

import click
import uvicorn

from wagateway.logging_config import get_logging_config
from wagateway.modules.config import get_config


@click.command()
@click.option("--host", "host", default=None, help="Bind address (defaults to API_HOST)")
@click.option("--port", "port", type=int, default=None, help="Port (defaults to PORT)")
@click.option("--reload", "reload", is_flag=True, default=False, help="Reload on code changes")
def main(host: Optional[str], port: Optional[int], reload: bool):
    config = get_config()

    # Use dict config for logging, not file path
    uvicorn.run(
        "wagateway.main:app",
        host=host or config.get("host"),
        port=port or config.get("port"),
        log_level=config.get("log_level").lower(),
        reload=reload or config.get("debug"),
        log_config=get_logging_config(config.get("log_level")),
    )


if __name__ == "__main__":
    main()
