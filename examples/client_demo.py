"""Run a mock task server and drive it with the Tasker client.

    pip install -e ".[examples]"
    python examples/client_demo.py
"""

import asyncio
import json
import uuid
from collections.abc import AsyncGenerator
from threading import Thread
from typing import Any

import uvicorn
from sse_starlette.sse import EventSourceResponse
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from tasker import Tasker, TaskEvent, TaskFailedError
from tasker.utilities.logging import configure_logging

PORT = 8012

# Mock task server: one event queue per task, one background job per dispatched task.
queues: dict[str, asyncio.Queue[dict[str, str]]] = {}
jobs: dict[str, asyncio.Task[None]] = {}


def _event(name: str, task_id: str, data: Any = None) -> dict[str, str]:
    return {"event": name, "data": json.dumps({"task_id": task_id, "data": data})}


async def status(request: Request) -> EventSourceResponse:
    task_id = request.query_params.get("task_id") or uuid.uuid4().hex
    queue = queues.setdefault(task_id, asyncio.Queue())

    async def events() -> AsyncGenerator[dict[str, str], None]:
        if "task_id" not in request.query_params:
            yield _event("activate", task_id)
        while True:
            event = await queue.get()
            yield event
            if event["event"] in ("success", "error"):
                return

    return EventSourceResponse(events())


async def run_job(task_id: str, steps: int) -> None:
    queue = queues[task_id]
    for step in range(1, steps + 1):
        await asyncio.sleep(0.2)
        await queue.put(_event("progress", task_id, step * 100 // steps))
    await queue.put(_event("success", task_id, {"steps": steps}))


async def dispose(request: Request) -> JSONResponse:
    body = await request.json()
    task_id = body["task_id"]
    jobs[task_id] = asyncio.create_task(run_job(task_id, int(body.get("steps", 5))))
    return JSONResponse({"task_id": task_id}, status_code=202)


async def terminate(request: Request) -> JSONResponse:
    task_id = (await request.json())["task_id"]
    job = jobs.pop(task_id, None)
    if job is not None:
        job.cancel()
    queue = queues.setdefault(task_id, asyncio.Queue())
    await queue.put(_event("terminate", task_id, "terminated by client"))
    await queue.put(_event("error", task_id, {"message": "Task was terminated"}))
    return JSONResponse({"task_id": task_id})


app = Starlette(
    routes=[
        Route("/status", endpoint=status),
        Route("/dispose", endpoint=dispose, methods=["POST"]),
        Route("/terminate", endpoint=terminate, methods=["POST"]),
    ]
)


def run_mock_server() -> None:
    uvicorn.run(app, host="127.0.0.1", port=PORT, log_level="warning")


async def on_progress(event: TaskEvent) -> None:
    print(f"  task {event.task_id[:8]} progress: {event.data}%")


async def on_terminate(event: TaskEvent) -> None:
    print(f"  task {event.task_id[:8]} terminated: {event.data}")


async def run_demo() -> None:
    server_thread = Thread(target=run_mock_server, daemon=True)
    server_thread.start()
    await asyncio.sleep(1)

    async with Tasker(base_url=f"http://127.0.0.1:{PORT}") as tasker:
        print("Running a task to completion")
        handle = await tasker.dispose({"steps": 4}, on_progress=on_progress)
        print("  result:", await handle.outcome)

        print("Terminating a task halfway")
        handle = await tasker.dispose({"steps": 10}, on_progress=on_progress, on_terminate=on_terminate)
        await asyncio.sleep(0.7)
        await handle.terminate()
        try:
            await handle.outcome
        except TaskFailedError as exc:
            print("  failed:", exc)


if __name__ == "__main__":
    configure_logging("WARNING")
    asyncio.run(run_demo())
