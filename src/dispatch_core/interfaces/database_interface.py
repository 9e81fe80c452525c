from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from dispatch_core.domain.query import Modifier, Query, resolve_modifier
from dispatch_core.domain.tables import TableRegistry


class IDatabase(ABC):
    """Storage collaborator.

    Implementations must read queries through ``resolve_query`` and interpret
    the expression model identically, whatever the backend.
    """

    tables: TableRegistry

    @abstractmethod
    async def drop(self, table: str | None = None) -> None:
        pass

    @abstractmethod
    async def get(
        self, table: str, query: Query, modifier: Modifier = None
    ) -> list[dict[str, Any]]:
        pass

    @abstractmethod
    async def set(self, table: str, query: Query, data: dict[str, Any]) -> None:
        pass

    @abstractmethod
    async def remove(self, table: str, query: Query) -> None:
        pass

    @abstractmethod
    async def create(self, table: str, data: dict[str, Any]) -> dict[str, Any]:
        pass

    @abstractmethod
    async def upsert(
        self,
        table: str,
        data: list[dict[str, Any]],
        keys: str | list[str] | None = None,
    ) -> None:
        pass

    @abstractmethod
    async def aggregate(
        self, table: str, fields: dict[str, Any], query: Query = None
    ) -> dict[str, Any]:
        pass

    async def get_user(
        self, platform: str, user_id: str, modifier: Modifier = None
    ) -> dict[str, Any] | None:
        """Get the user bound to ``user_id`` on ``platform``."""
        modifier = resolve_modifier(modifier)
        if "fields" in modifier and platform not in modifier["fields"]:
            modifier = {**modifier, "fields": [*modifier["fields"], platform]}
        data = await self.get("user", {platform: user_id}, modifier)
        if not data:
            return None
        return {**data[0], platform: user_id}

    async def get_users(
        self, platform: str, user_ids: list[str], modifier: Modifier = None
    ) -> list[dict[str, Any]]:
        return await self.get("user", {platform: user_ids}, modifier)

    async def set_user(self, platform: str, user_id: str, data: dict[str, Any]) -> None:
        await self.set("user", {platform: user_id}, data)

    async def create_user(
        self, platform: str, user_id: str, data: dict[str, Any]
    ) -> dict[str, Any]:
        return await self.create("user", {platform: user_id, **data})

    async def get_channel(
        self, platform: str, channel_id: str, modifier: Modifier = None
    ) -> dict[str, Any] | None:
        data = await self.get("channel", {"platform": platform, "id": channel_id}, modifier)
        if not data:
            return None
        return {**data[0], "platform": platform, "id": channel_id}

    async def set_channel(
        self, platform: str, channel_id: str, data: dict[str, Any]
    ) -> None:
        await self.set("channel", {"platform": platform, "id": channel_id}, data)

    async def create_channel(
        self, platform: str, channel_id: str, data: dict[str, Any]
    ) -> dict[str, Any]:
        return await self.create("channel", {"platform": platform, "id": channel_id, **data})

    async def get_assigned_channels(
        self, assign_map: dict[str, list[str]], fields: Modifier = None
    ) -> list[dict[str, Any]]:
        """Get channels assigned to any of the given ``platform -> assignees``."""
        query = {
            "$or": [
                {"platform": platform, "assignee": assignees}
                for platform, assignees in assign_map.items()
            ]
        }
        return await self.get("channel", query, fields)
