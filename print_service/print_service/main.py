"""Main entry point for the Print Service."""

import uvicorn

from print_service.config import get_settings
from print_service.server import app

if __name__ == "__main__":
    server = get_settings().server
    uvicorn.run(app, host=server.host, port=server.port)
