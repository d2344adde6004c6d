import asyncio

from epl_hub.worker import NotificationWorker


def test_worker_processes_queued_messages():
    async def scenario():
        worker = NotificationWorker()
        worker.start()
        worker.notify("New user: Ada")
        worker.notify("New user: Grace")
        await worker.drain()
        running = worker.running
        await worker.stop()
        return worker, running

    worker, running = asyncio.run(scenario())

    assert running
    assert worker.processed == 2
    assert not worker.running


def test_handler_errors_do_not_stop_the_worker():
    class Flaky(NotificationWorker):
        def handle(self, message):
            if message == "boom":
                raise RuntimeError("handler failed")
            super().handle(message)

    async def scenario():
        worker = Flaky()
        worker.start()
        worker.notify("boom")
        worker.notify("ok")
        await worker.drain()
        await worker.stop()
        return worker

    assert asyncio.run(scenario()).processed == 1
