"""Example plugin: ``custom_wait <ms>`` pauses the page for the given time."""

import logging

from flowcheck.executor.registry import CustomAction

logger = logging.getLogger(__name__)


async def _execute(ctx, params):
    ms = int(params[0]) if params and params[0] else 1000
    logger.info("    Custom wait for %dms...", ms)
    await ctx.page.wait_for_timeout(ms)


action = CustomAction(name="custom_wait", execute=_execute)
