"""Batch engine: debounce related requests, then dispatch them together."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Hashable
from enum import StrEnum
from typing import Any

from batchreq.core.errors import (
    BatchAlreadyExecutingError,
    MemberAlreadyFinalizedError,
    MissingTargetOrMethodError,
)
from batchreq.core.payload import PayloadBuilder
from batchreq.ports.http import HttpMethod, TransportPort
from batchreq.ports.settings import BatchSettingsPort

__all__ = ["BatchGroup", "BatchMember", "BatchRegistry", "BatchState"]

logger = logging.getLogger(__name__)


class BatchState(StrEnum):
    """Lifecycle of a batch group.

    COLLECTING:  members may join; a debounce timer may be armed.
    DISPATCHING: members are being executed; joins and finalizes are rejected.
    TERMINATED:  every member ran and the group left the registry.
    """

    COLLECTING = "collecting"
    DISPATCHING = "dispatching"
    TERMINATED = "terminated"


class BatchMember(PayloadBuilder):
    """One queued request inside a batch group.

    Configuration is accumulated like any request; ``stall`` and ``throttle``
    are written to the owning group. Finalizing with a verb returns the
    member's future, which settles when the group dispatches.
    """

    def __init__(self, group: BatchGroup, result: asyncio.Future[Any]) -> None:
        super().__init__()
        self.group = group
        self.result = result
        self.method: HttpMethod | None = None

    def stall(self, stall_ms: float) -> BatchMember:
        self.group.stall_ms = stall_ms
        return self

    def throttle(self, throttle_ms: float) -> BatchMember:
        self.group.throttle_ms = throttle_ms
        return self

    def get(self, immediate: bool = False) -> asyncio.Future[Any]:
        return self.finalize(HttpMethod.GET, immediate)

    def post(self, immediate: bool = False) -> asyncio.Future[Any]:
        return self.finalize(HttpMethod.POST, immediate)

    def put(self, immediate: bool = False) -> asyncio.Future[Any]:
        return self.finalize(HttpMethod.PUT, immediate)

    def delete(self, immediate: bool = False) -> asyncio.Future[Any]:
        return self.finalize(HttpMethod.DELETE, immediate)

    def finalize(self, method: HttpMethod, immediate: bool = False) -> asyncio.Future[Any]:
        """Choose the verb and hand the member over to its group's schedule.

        Args:
            method: HTTP verb.
            immediate: Dispatch the whole group now instead of debouncing.

        Returns:
            Future settled with this member's result.

        Raises:
            BatchAlreadyExecutingError: If the group is dispatching or done.
            MemberAlreadyFinalizedError: If a verb was already chosen.
        """
        if self.method is not None:
            raise MemberAlreadyFinalizedError()

        if self.group.state is not BatchState.COLLECTING:
            error = BatchAlreadyExecutingError(
                f"Batch {self.group.batch_id!r} is {self.group.state}; cannot finalize {method}"
            )
            if not self.result.done():
                self.result.set_exception(error)
                # Raised below; mark it retrieved so asyncio does not report it.
                self.result.exception()
            raise error

        self.method = method
        if immediate:
            self.group.dispatch_now()
        else:
            self.group.schedule()
        return self.result


class BatchGroup:
    """Coordinator owning the members that share one batch id.

    All members share one schedule: a debounce timer re-armed on every
    deferred finalize, and a dispatch strategy chosen by ``throttle_ms``
    (None means concurrent, otherwise sequential with pacing).
    """

    def __init__(
        self,
        batch_id: Hashable,
        transport: TransportPort,
        on_dispatched: Callable[[], None],
        *,
        stall_ms: float = 50,
        throttle_ms: float | None = None,
        throttle_floor_ms: float = 50,
    ) -> None:
        self.batch_id = batch_id
        self.members: list[BatchMember] = []
        self.state = BatchState.COLLECTING
        self._transport = transport
        self._on_dispatched = on_dispatched
        self._throttle_floor_ms = throttle_floor_ms
        self._stall_ms = 0.0
        self._throttle_ms: float | None = None
        self._timer_handle: asyncio.TimerHandle | None = None
        self._dispatch_task: asyncio.Task[None] | None = None
        self._unsettled = 0
        self._loop = asyncio.get_running_loop()

        self.stall_ms = stall_ms
        if throttle_ms is not None:
            self.throttle_ms = throttle_ms

    @property
    def stall_ms(self) -> float:
        return self._stall_ms

    @stall_ms.setter
    def stall_ms(self, value: float) -> None:
        if value < 0:
            raise ValueError(f"stall_ms must be >= 0, got {value}")
        self._stall_ms = value

    @property
    def throttle_ms(self) -> float | None:
        return self._throttle_ms

    @throttle_ms.setter
    def throttle_ms(self, value: float | None) -> None:
        # A missing or tiny interval still throttles, at the floor rate.
        self._throttle_ms = max(value or 0, self._throttle_floor_ms)

    @property
    def dispatching(self) -> bool:
        return self.state is BatchState.DISPATCHING

    @property
    def dispatch_task(self) -> asyncio.Task[None] | None:
        return self._dispatch_task

    def join(self) -> BatchMember:
        """Append a fresh member to the group.

        Returns:
            The new member; await ``member.result`` for its outcome.

        Raises:
            BatchAlreadyExecutingError: If the group no longer collects members.
        """
        if self.state is not BatchState.COLLECTING:
            raise BatchAlreadyExecutingError(
                f"Batch {self.batch_id!r} is {self.state}; cannot add a request"
            )
        member = BatchMember(self, self._loop.create_future())
        self.members.append(member)
        return member

    def schedule(self) -> None:
        """(Re)arm the debounce timer, replacing any pending one."""
        self._cancel_timer()
        self._timer_handle = self._loop.call_later(self._stall_ms / 1_000, self.dispatch_now)
        logger.debug(
            f"Batch {self.batch_id!r}: dispatch armed in {self._stall_ms} ms "
            f"({len(self.members)} members)"
        )

    def dispatch_now(self) -> None:
        """Enter DISPATCHING and start the dispatch pass in the background."""
        if self.state is not BatchState.COLLECTING:
            return
        self.state = BatchState.DISPATCHING
        self._cancel_timer()
        self._dispatch_task = self._loop.create_task(self._dispatch())

    async def _dispatch(self) -> None:
        members = list(self.members)
        strategy = (
            "concurrent" if self._throttle_ms is None else f"throttled {self._throttle_ms} ms"
        )
        logger.debug(f"Batch {self.batch_id!r}: dispatching {len(members)} members ({strategy})")
        self._unsettled = len(members)
        if not members:
            self._finish()
            return

        try:
            if self._throttle_ms is None:
                await self._execute_concurrently(members)
            else:
                await self._execute_throttled(members, self._throttle_ms)
        finally:
            for member in members:
                if not member.result.done():
                    member.result.cancel()
            self._finish()

    async def _execute_concurrently(self, members: list[BatchMember]) -> None:
        await asyncio.gather(*(self._run_member(m) for m in members), return_exceptions=True)

    async def _execute_throttled(self, members: list[BatchMember], throttle_ms: float) -> None:
        for index, member in enumerate(members):
            if index:
                await asyncio.sleep(throttle_ms / 1_000)
            await self._run_member(member)

    async def _run_member(self, member: BatchMember) -> None:
        value, error = await self.execute_one(member)
        self._unsettled -= 1
        # The group leaves the registry before its last member settles.
        if not self._unsettled:
            self._finish()
        if member.result.done():
            return
        if error is not None:
            member.result.set_exception(error)
        else:
            member.result.set_result(value)

    async def execute_one(self, member: BatchMember) -> tuple[Any, BaseException | None]:
        """Run one member's request without settling its future.

        Failures are returned rather than raised, so siblings are unaffected.

        Args:
            member: Member to execute.

        Returns:
            ``(value, None)`` on success, ``(None, error)`` on failure.
        """
        if member.result.done():
            return None, None

        payload = member.payload
        if not payload.url or member.method is None:
            logger.warning(f"Batch {self.batch_id!r}: rejecting member without url or method")
            return None, MissingTargetOrMethodError()

        try:
            value = await self._transport.execute(member.method, payload)
            if member.validator is not None:
                value = member.validator(value)
        except Exception as e:  # noqa: BLE001
            logger.warning(f"Batch {self.batch_id!r}: {member.method} {payload.url} failed: {e}")
            return None, e
        return value, None

    def _finish(self) -> None:
        if self.state is BatchState.TERMINATED:
            return
        self._on_dispatched()
        self.state = BatchState.TERMINATED
        logger.debug(f"Batch {self.batch_id!r}: dispatch finished")

    def _cancel_timer(self) -> None:
        if self._timer_handle is not None:
            self._timer_handle.cancel()
            self._timer_handle = None

    def __repr__(self) -> str:
        return (
            f"BatchGroup(batch_id={self.batch_id!r}, members={len(self.members)}, "
            f"stall_ms={self._stall_ms}, throttle_ms={self._throttle_ms}, state={self.state.value})"
        )


class BatchRegistry:
    """Process-wide map from batch id to its live group.

    Groups are created lazily on first reference and remove themselves as
    soon as their last member has run, before its future settles.
    """

    def __init__(self, transport: TransportPort, settings: BatchSettingsPort | None = None) -> None:
        self._transport = transport
        self._settings = settings or BatchSettingsPort()
        self._groups: dict[Hashable, BatchGroup] = {}

    def batch(self, batch_id: Hashable) -> BatchMember:
        """Join the group for ``batch_id``, creating it when needed.

        Raises:
            BatchAlreadyExecutingError: If that group is currently dispatching.
        """
        return self.get_or_create(batch_id).join()

    def get_or_create(self, batch_id: Hashable) -> BatchGroup:
        group = self._groups.get(batch_id)
        if group is None:
            group = BatchGroup(
                batch_id,
                self._transport,
                on_dispatched=lambda: self._forget(batch_id, group),
                stall_ms=self._settings.stall_ms,
                throttle_ms=self._settings.throttle_ms,
                throttle_floor_ms=self._settings.throttle_floor_ms,
            )
            self._groups[batch_id] = group
            logger.debug(f"Created batch group {batch_id!r}")
        return group

    def get(self, batch_id: Hashable) -> BatchGroup | None:
        return self._groups.get(batch_id)

    def remove(self, batch_id: Hashable) -> None:
        self._groups.pop(batch_id, None)

    def _forget(self, batch_id: Hashable, group: BatchGroup | None) -> None:
        # The id may already belong to a newer group.
        if self._groups.get(batch_id) is group:
            self.remove(batch_id)

    def __contains__(self, batch_id: object) -> bool:
        return batch_id in self._groups

    def __len__(self) -> int:
        return len(self._groups)
