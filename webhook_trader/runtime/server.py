from __future__ import annotations

import asyncio
import logging

from aiohttp import web

from webhook_trader.common import log_event
from webhook_trader.trading import VALID_ACTIONS, TradingAgent

AGENT_KEY = web.AppKey("agent", TradingAgent)
LOGGER_KEY = web.AppKey("logger", logging.Logger)

INVALID_ACTION_TEXT = "Invalid action. Must be 'buy' or 'sell'."


async def _read_action(request: web.Request) -> str | None:
    try:
        body = await request.json()
    except ValueError:
        return None
    if not isinstance(body, dict):
        return None
    action = body.get("action")
    if isinstance(action, str) and action in VALID_ACTIONS:
        return action
    return None


async def handle_webhook(request: web.Request) -> web.Response:
    agent = request.app[AGENT_KEY]
    logger = request.app[LOGGER_KEY]

    action = await _read_action(request)
    if action is None:
        log_event(
            logger,
            level="warning",
            event="webhook_rejected",
            message="Rejected webhook with invalid action",
            remote=request.remote,
        )
        return web.Response(status=400, text=INVALID_ACTION_TEXT)

    log_event(logger, level="info", event="webhook_received", message="Webhook received", action=action)

    try:
        outcome = await agent.handle_signal(action)
    except asyncio.CancelledError:
        raise
    except Exception as error:
        log_event(
            logger,
            level="exception",
            event="webhook_failed",
            message=f"Error executing {action}",
            action=action,
            error=str(error),
        )
        return web.Response(status=500, text=f"Failed to execute {action}.")

    if outcome.failed:
        log_event(
            logger,
            level="error",
            event="webhook_failed",
            message=f"Error executing {action}",
            **outcome.to_dict(),
        )
        return web.Response(status=500, text=f"Failed to execute {action}.")

    log_event(logger, level="info", event="webhook_completed", message="Webhook handled", **outcome.to_dict())
    return web.Response(status=200, text=f"Action {action} executed successfully.")


async def handle_health(request: web.Request) -> web.Response:
    agent = request.app[AGENT_KEY]
    try:
        await agent.healthcheck()
    except asyncio.CancelledError:
        raise
    except Exception as error:
        log_event(
            request.app[LOGGER_KEY],
            level="warning",
            event="healthcheck_failed",
            message="Healthcheck failed",
            error=str(error),
        )
        return web.Response(status=503, text="unhealthy")
    return web.Response(status=200, text="ok")


def create_app(*, agent: TradingAgent, logger: logging.Logger) -> web.Application:
    app = web.Application()
    app[AGENT_KEY] = agent
    app[LOGGER_KEY] = logger
    app.router.add_post("/webhook", handle_webhook)
    app.router.add_get("/health", handle_health)
    return app


async def serve(
    *,
    app: web.Application,
    host: str,
    port: int,
    stop_event: asyncio.Event,
    logger: logging.Logger,
) -> None:
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, host=host, port=port)
    try:
        await site.start()
        log_event(
            logger,
            level="info",
            event="server_started",
            message=f"Webhook server is listening on port {port}",
            host=host,
            port=port,
        )
        await stop_event.wait()
    finally:
        await runner.cleanup()
