"""League table endpoint and the live standings websocket."""

import asyncio

from fastapi import APIRouter, Depends, WebSocket
from starlette.concurrency import run_in_threadpool

from ...database import StoreError
from ...logging import get_logger
from ...table import Standings, standings_to_json
from ..deps import Services, get_services

logger = get_logger(__name__)

router = APIRouter()


@router.get("/api/table")
def get_table(services: Services = Depends(get_services)):
    """Current standings: points, then goal difference, both descending."""
    return standings_to_json(services.table.compute())


@router.websocket("/ws/standings")
async def standings_feed(websocket: WebSocket):
    """
    Live table. The first message is the table at connect time, followed by
    a fresh ``{"standings": [...]}`` message whenever a result moves it.
    """
    services: Services = websocket.app.state.services
    await websocket.accept()

    try:
        rows = await run_in_threadpool(services.table.compute)
    except StoreError as e:
        logger.error("Cannot load standings for new subscriber: %s", e)
        await websocket.close(code=1011)
        return

    subscriber = await services.broadcaster.subscribe(websocket, rows)
    # Ends when the client leaves or the broadcaster drops (and closes) us
    client_gone = asyncio.create_task(_wait_for_disconnect(websocket))
    dropped = asyncio.create_task(subscriber.wait_closed())
    try:
        done, _ = await asyncio.wait({client_gone, dropped}, return_when=asyncio.FIRST_COMPLETED)
        if client_gone in done:
            client_gone.result()
    finally:
        for task in (client_gone, dropped):
            task.cancel()
        await asyncio.gather(client_gone, dropped, return_exceptions=True)
        await services.broadcaster.unsubscribe(subscriber)


async def _wait_for_disconnect(websocket: WebSocket) -> None:
    # Inbound messages are ignored
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            return


async def publish_standings(services: Services) -> Standings:
    """Recompute the table past its caches and push it to live subscribers."""
    rows = await run_in_threadpool(services.table.refresh)
    await services.broadcaster.broadcast(rows)
    return rows
