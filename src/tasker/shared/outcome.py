from collections.abc import Generator
from typing import Any, Generic, TypeVar

import anyio

T = TypeVar("T")


class TaskOutcome(Generic[T]):
    """One-shot result cell for a task.

    The cell settles at most once, either with a value or with an exception.
    Later attempts to settle it are ignored and report ``False``. Awaiting the
    cell suspends until it settles, then returns the value or raises the
    exception.

    Example:
        outcome = TaskOutcome[str]()
        outcome.set_result("done")
        assert await outcome == "done"
    """

    def __init__(self) -> None:
        self._settled = anyio.Event()
        self._value: T | None = None
        self._error: BaseException | None = None

    @property
    def done(self) -> bool:
        return self._settled.is_set()

    @property
    def error(self) -> BaseException | None:
        """The rejection cause, or None when unsettled or resolved."""
        return self._error

    def set_result(self, value: T) -> bool:
        if self.done:
            return False
        self._value = value
        self._settled.set()
        return True

    def set_error(self, error: BaseException) -> bool:
        if self.done:
            return False
        self._error = error
        self._settled.set()
        return True

    async def result(self) -> T:
        await self._settled.wait()
        if self._error is not None:
            raise self._error
        return self._value  # type: ignore[return-value]

    def __await__(self) -> Generator[Any, None, T]:
        return self.result().__await__()
