"""Command line interface for running the API server."""
import asyncio
import logging
import signal

import uvicorn

from config import settings_conf

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings_conf['log_level'], logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

class UvicornServer:
    """Wrapper for running uvicorn with proper lifecycle management."""

    def __init__(self, app_path: str = "api:app", host: str = "0.0.0.0", port: int = 8080):
        self.config = uvicorn.Config(
            app_path,
            host=host,
            port=port,
            log_level=settings_conf['log_level'].lower()
        )
        self.server = uvicorn.Server(self.config)

    async def run(self):
        """Run the server until it is asked to stop."""
        await self.server.serve()

    def stop(self):
        """Ask the server to finish in-flight requests and exit."""
        self.server.should_exit = True

async def main():
    """Run the API server; the app lifespan owns the database pool."""
    server = UvicornServer(host=settings_conf['host'], port=settings_conf['port'])

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, server.stop)
        except NotImplementedError:
            # Windows event loops have no signal handlers
            pass

    logger.info(f"Starting API on {settings_conf['host']}:{settings_conf['port']}")
    await server.run()
    logger.info("API stopped")

def run():
    """Console script entry point."""
    asyncio.run(main())

if __name__ == "__main__":
    run()
