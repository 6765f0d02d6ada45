"""
Graceful Shutdown for DocProof.

Shutdown handlers are async callables registered at startup and run in
reverse order when the application stops: scheduled confirmations are
cancelled before the database engine is disposed.
"""

import asyncio
import logging
from typing import Any, Callable, Coroutine

logger = logging.getLogger(__name__)

ShutdownHandler = Callable[[], Coroutine[Any, Any, None]]

# Registry of shutdown handlers
_shutdown_handlers: list[ShutdownHandler] = []
_shutdown_timeout: float = 30.0  # seconds


def register_shutdown_handler(handler: ShutdownHandler) -> None:
    """
    Register an async function to be called during graceful shutdown.

    Usage:
        async def stop_scheduler():
            await get_confirmation_scheduler().shutdown()

        register_shutdown_handler(stop_scheduler)
    """
    if handler in _shutdown_handlers:
        return
    _shutdown_handlers.append(handler)
    logger.debug("Registered shutdown handler: %s", handler.__name__)


def clear_shutdown_handlers() -> None:
    _shutdown_handlers.clear()


def set_shutdown_timeout(timeout: float) -> None:
    """Set the timeout for graceful shutdown (default: 30 seconds)."""
    global _shutdown_timeout
    _shutdown_timeout = timeout


async def run_shutdown_handlers() -> None:
    """
    Execute all registered shutdown handlers, last registered first.
    A failing or slow handler is logged and does not stop the others.
    """
    if not _shutdown_handlers:
        return

    handlers = list(reversed(_shutdown_handlers))
    _shutdown_handlers.clear()
    per_handler_timeout = _shutdown_timeout / len(handlers)

    logger.info("Running %d shutdown handlers...", len(handlers))
    for handler in handlers:
        try:
            logger.debug("Running shutdown handler: %s", handler.__name__)
            await asyncio.wait_for(handler(), timeout=per_handler_timeout)
        except asyncio.TimeoutError:
            logger.error("Shutdown handler timed out: %s", handler.__name__)
        except Exception as e:
            logger.error("Shutdown handler failed: %s - %s", handler.__name__, e)

    logger.info("All shutdown handlers completed")
