"""Durable state — the small fact base every iteration re-reads.

The record lives in a JSON file next to the goal and skill documents. It is
loaded once at startup and rewritten after every mutation, so a later
iteration (or a later process) always sees what the last tool call wrote.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path
from typing import Any

import aiofiles
import aiofiles.os
from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)


class AgentMemory(BaseModel):
    """Fields the loop knows about, plus whatever else a deployment stores.

    Unknown keys found on disk are kept and written back unchanged.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    credential: str | None = None
    identity: str | None = None
    activation_url: str | None = Field(default=None, alias="activation-url")
    last_action_timestamp: datetime | None = Field(
        default=None, alias="last-action-timestamp"
    )

    def to_json(self, indent: int | None = 2) -> str:
        return self.model_dump_json(by_alias=True, indent=indent)


class StateStore:
    """Owns the in-memory AgentMemory and its on-disk copy.

    All writes go through :meth:`mutate`, which holds a lock for the whole
    read-modify-persist cycle. The in-memory state only changes after the
    file has been replaced, so a failed write leaves both copies as they were.
    """

    def __init__(self, path: str | Path, state: AgentMemory | None = None) -> None:
        self.path = Path(path)
        self._state = state or AgentMemory()
        self._lock = asyncio.Lock()

    @classmethod
    def load(cls, path: str | Path) -> StateStore:
        """Load the record at ``path``. Never raises: bad files mean empty state."""
        path = Path(path)
        if not path.exists():
            logger.info("No state file at %s, starting fresh", path)
            return cls(path)

        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            state = AgentMemory.model_validate(data)
        except (OSError, ValueError, ValidationError) as e:
            logger.warning(
                "Could not read state file %s, starting fresh: %s", path, e
            )
            return cls(path)

        logger.info("Loaded state from %s", path)
        return cls(path, state)

    @property
    def state(self) -> AgentMemory:
        """A copy of the current state. Mutate through :meth:`mutate` instead."""
        return self._state.model_copy(deep=True)

    def snapshot(self, indent: int | None = 2) -> str:
        return self._state.to_json(indent=indent)

    @asynccontextmanager
    async def mutate(self) -> AsyncIterator[AgentMemory]:
        """Yield a draft of the state; persist and publish it on clean exit.

        Usage:
            async with store.mutate() as draft:
                draft.credential = "k1"
        """
        async with self._lock:
            draft = self._state.model_copy(deep=True)
            yield draft
            await self._flush(draft)
            self._state = draft

    async def update(self, **fields: Any) -> AgentMemory:
        """Set fields by attribute name, persist, and return the new state."""
        async with self.mutate() as draft:
            for key, value in fields.items():
                setattr(draft, key, value)
        return self.state

    async def touch(self) -> AgentMemory:
        """Record that a mutating remote action just happened."""
        return await self.update(last_action_timestamp=datetime.now().astimezone())

    async def _flush(self, state: AgentMemory) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        async with aiofiles.open(tmp_path, "w", encoding="utf-8") as f:
            await f.write(state.to_json() + "\n")
        await aiofiles.os.replace(tmp_path, self.path)
        logger.debug("State flushed to %s", self.path)


__all__ = ["AgentMemory", "StateStore"]
