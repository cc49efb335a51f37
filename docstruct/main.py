"""Application entry point for the document structuring API server."""

import uvicorn

from docstruct.api.app import app
from docstruct.utils.config import load_config
from docstruct.utils.logger import setup_logging


def main() -> None:
    """Start the FastAPI application server."""
    config = load_config()
    setup_logging(config.log_level)
    uvicorn.run(app, host=config.api.host, port=config.api.port)


if __name__ == "__main__":
    main()
