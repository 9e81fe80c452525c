from __future__ import annotations

import copy
import logging
from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING, Any

from dispatch_core.common.utils import maybe_await

if TYPE_CHECKING:
    from dispatch_core.interfaces.database_interface import IDatabase

logger = logging.getLogger(__name__)

Sender = Callable[[str], Any]


class ObservedRecord(dict):
    """A fetched record that remembers the values it was loaded with.

    Policy middleware mutates ``usage`` and ``timers`` in place; ``diff()``
    reports every top-level field whose value differs from the snapshot.
    """

    def __init__(self, data: dict[str, Any] | None = None) -> None:
        super().__init__(data or {})
        self._snapshot: dict[str, Any] = copy.deepcopy(dict(self))

    def merge(self, data: dict[str, Any]) -> None:
        """Add freshly loaded fields without overwriting local changes."""
        for key, value in data.items():
            if key not in self:
                self[key] = value
                self._snapshot[key] = copy.deepcopy(value)

    def diff(self) -> dict[str, Any]:
        return {
            key: copy.deepcopy(value)
            for key, value in self.items()
            if key not in self._snapshot or self._snapshot[key] != value
        }

    def commit(self) -> None:
        self._snapshot = copy.deepcopy(dict(self))


class Session:
    """The conversational context an invocation originates from."""

    def __init__(
        self,
        platform: str,
        user_id: str,
        channel_id: str | None = None,
        *,
        content: str = "",
        database: IDatabase | None = None,
        sender: Sender | None = None,
        user: dict[str, Any] | None = None,
        channel: dict[str, Any] | None = None,
        user_defaults: dict[str, Any] | None = None,
    ) -> None:
        self.platform = platform
        self.user_id = user_id
        self.channel_id = channel_id
        self.content = content
        self.database = database
        self._sender = sender
        self._user_defaults = dict(user_defaults or {})
        self.user: ObservedRecord | None = ObservedRecord(user) if user is not None else None
        self.channel: ObservedRecord | None = (
            ObservedRecord(channel) if channel is not None else None
        )

    def __repr__(self) -> str:
        return f"<Session {self.uid}>"

    @property
    def uid(self) -> str:
        return f"{self.platform}:{self.user_id}"

    @property
    def cid(self) -> str | None:
        if self.channel_id is None:
            return None
        return f"{self.platform}:{self.channel_id}"

    async def send(self, text: str) -> None:
        if not text or self._sender is None:
            return
        await maybe_await(self._sender(text))

    async def observe_user(self, fields: Iterable[str]) -> ObservedRecord:
        """Make sure ``fields`` of the user record are loaded.

        Missing users are created through the storage collaborator. Without a
        collaborator the record stays empty, which disables user policy.
        """
        fields = set(fields)
        if self.user is None:
            self.user = ObservedRecord()
        missing = sorted(fields - set(self.user))
        if not missing or self.database is None:
            return self.user

        data = await self.database.get_user(self.platform, self.user_id, missing)
        if data is None:
            logger.debug("Creating user record for %s", self.uid)
            data = await self.database.create_user(
                self.platform, self.user_id, self._user_defaults
            )
        self.user.merge({key: data.get(key) for key in missing if key in data})
        return self.user

    async def observe_channel(self, fields: Iterable[str]) -> ObservedRecord | None:
        if self.channel_id is None:
            return None
        fields = set(fields)
        if self.channel is None:
            self.channel = ObservedRecord()
        missing = sorted(fields - set(self.channel))
        if not missing or self.database is None:
            return self.channel

        data = await self.database.get_channel(self.platform, self.channel_id, missing)
        if data is None:
            data = await self.database.create_channel(self.platform, self.channel_id, {})
        self.channel.merge({key: data.get(key) for key in missing if key in data})
        return self.channel

    async def flush(self) -> None:
        """Persist changes made to the observed records."""
        if self.database is None:
            return
        if self.user is not None:
            changes = self.user.diff()
            if changes:
                await self.database.set_user(self.platform, self.user_id, changes)
                self.user.commit()
        if self.channel is not None and self.channel_id is not None:
            changes = self.channel.diff()
            if changes:
                await self.database.set_channel(self.platform, self.channel_id, changes)
                self.channel.commit()
