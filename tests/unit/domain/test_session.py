from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from dispatch_core.domain.session import ObservedRecord, Session
from dispatch_core.repositories.in_memory_database import InMemoryDatabase


class TestObservedRecord:
    def test_diff_reports_changed_and_added_fields(self) -> None:
        record = ObservedRecord({"authority": 1, "usage": {"echo": 1}})

        record["usage"]["echo"] = 2
        record["name"] = "alice"

        assert record.diff() == {"usage": {"echo": 2}, "name": "alice"}

    def test_commit_resets_snapshot(self) -> None:
        record = ObservedRecord({"authority": 1})
        record["authority"] = 2

        record.commit()

        assert record.diff() == {}

    def test_merge_keeps_local_changes(self) -> None:
        record = ObservedRecord({"authority": 1})
        record["authority"] = 5

        record.merge({"authority": 1, "usage": {}})

        assert record["authority"] == 5
        assert record.diff() == {"authority": 5}


class TestSession:
    def test_identifiers(self) -> None:
        session = Session("discord", "42", "100")

        assert session.uid == "discord:42"
        assert session.cid == "discord:100"
        assert Session("discord", "42").cid is None

    @pytest.mark.asyncio
    async def test_send_skips_empty_text(self) -> None:
        sender = AsyncMock()
        session = Session("discord", "42", sender=sender)

        await session.send("")
        await session.send("hello")

        sender.assert_awaited_once_with("hello")

    @pytest.mark.asyncio
    async def test_observe_user_creates_missing_user(self) -> None:
        db = InMemoryDatabase()
        session = Session("discord", "42", database=db, user_defaults={"authority": 1})

        user = await session.observe_user(["authority", "usage"])

        assert user == {"authority": 1, "usage": {}}
        assert await db.get_user("discord", "42", ["authority"]) == {
            "authority": 1,
            "discord": "42",
        }

    @pytest.mark.asyncio
    async def test_observe_user_loads_only_missing_fields(self) -> None:
        db = InMemoryDatabase()
        await db.create_user("discord", "42", {"authority": 2, "name": "alice"})
        db.get_user = AsyncMock(wraps=db.get_user)
        session = Session("discord", "42", database=db)

        await session.observe_user(["authority"])
        await session.observe_user(["authority", "name"])

        assert session.user == {"authority": 2, "name": "alice"}
        assert db.get_user.await_args_list[1].args == ("discord", "42", ["name"])

    @pytest.mark.asyncio
    async def test_flush_persists_changes(self) -> None:
        db = InMemoryDatabase()
        await db.create_user("discord", "42", {})
        session = Session("discord", "42", "100", database=db)
        await session.observe_user(["usage"])
        await session.observe_channel(["assignee"])

        session.user["usage"]["echo"] = 1
        session.channel["assignee"] = "7"
        await session.flush()

        assert (await db.get_user("discord", "42", ["usage"]))["usage"] == {"echo": 1}
        assert (await db.get_channel("discord", "100", ["assignee"]))["assignee"] == "7"
        assert session.user.diff() == {}

    @pytest.mark.asyncio
    async def test_without_database_records_stay_local(self) -> None:
        session = Session("discord", "42")

        user = await session.observe_user(["authority"])
        await session.flush()

        assert user == {}
