"""A client for handing long-running work to a task server and following it.

Use the Tasker client to:

- Dispose new tasks and receive their result without polling
- Join tasks already running on the server
- Observe progress, success, error and termination events
- Request termination of a running task

## Example

```python
from tasker import Tasker

async def show_progress(event):
    print(f"{event.task_id}: {event.data}%")

async with Tasker(base_url="http://localhost:8000") as tasker:
    handle = await tasker.dispose({"video": "cat.mp4"}, on_progress=show_progress)
    result = await handle.outcome
```
"""

from tasker.client.session import TaskSession, TaskState
from tasker.client.tasker import TaskHandle, Tasker
from tasker.settings import TaskerSettings
from tasker.shared.exceptions import (
    SessionClosedError,
    TaskerError,
    TaskFailedError,
    TaskNotActivatedError,
    TaskTerminatedError,
)
from tasker.shared.outcome import TaskOutcome
from tasker.types import ChannelEvent, TaskEvent, TaskObservers

__all__ = [
    "ChannelEvent",
    "SessionClosedError",
    "TaskEvent",
    "TaskFailedError",
    "TaskHandle",
    "TaskNotActivatedError",
    "TaskObservers",
    "TaskOutcome",
    "TaskSession",
    "TaskState",
    "TaskTerminatedError",
    "Tasker",
    "TaskerError",
    "TaskerSettings",
]
