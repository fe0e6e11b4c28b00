from collections.abc import AsyncGenerator

import pytest

from tasker.client.tasker import Tasker
from tasker.settings import TaskerSettings
from tasker.shared.memory import MemoryCommandChannel, MemoryEventChannel


@pytest.fixture
def settings() -> TaskerSettings:
    return TaskerSettings(base_url="http://tasks.test")


@pytest.fixture
def command_channel() -> MemoryCommandChannel:
    return MemoryCommandChannel()


@pytest.fixture
def event_channel() -> MemoryEventChannel:
    return MemoryEventChannel()


@pytest.fixture
async def tasker(
    settings: TaskerSettings,
    command_channel: MemoryCommandChannel,
    event_channel: MemoryEventChannel,
) -> AsyncGenerator[Tasker, None]:
    async with Tasker(settings, command_channel=command_channel, event_channel=event_channel) as client:
        yield client
