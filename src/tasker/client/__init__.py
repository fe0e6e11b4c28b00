"""Tasker client module."""

from tasker.client.channels import CommandChannel, EventChannel
from tasker.client.http import HttpCommandChannel
from tasker.client.session import TaskSession, TaskState
from tasker.client.sse import SseEventChannel
from tasker.client.tasker import TaskHandle, Tasker

__all__ = [
    "CommandChannel",
    "EventChannel",
    "HttpCommandChannel",
    "SseEventChannel",
    "TaskHandle",
    "TaskSession",
    "TaskState",
    "Tasker",
]
