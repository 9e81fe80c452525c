from __future__ import annotations

import pytest

from dispatch_core.app.application import Application
from dispatch_core.common.exceptions import CommandNotFoundError
from dispatch_core.domain.argv import Argv
from dispatch_core.domain.session import Session
from dispatch_core.repositories.in_memory_database import InMemoryDatabase


class TestDispatch:
    @pytest.mark.asyncio
    async def test_reply_is_sent_and_returned(
        self, app: Application, session: Session, replies: list[str]
    ) -> None:
        app.command("echo <message:text>").action(lambda argv, *words: " ".join(words))

        result = await app.dispatch(session, Argv(name="echo", args=["hello", "there"]))

        assert result == "hello there"
        assert replies == ["hello there"]

    @pytest.mark.asyncio
    async def test_empty_reply_is_not_sent(
        self, app: Application, session: Session, replies: list[str]
    ) -> None:
        app.command("noop").action(lambda argv: None)

        assert await app.dispatch(session, Argv(name="noop")) == ""
        assert replies == []

    @pytest.mark.asyncio
    async def test_resolves_aliases(self, app: Application, session: Session) -> None:
        app.command("echo").alias("say").action(lambda argv: "ok")

        assert await app.dispatch(session, Argv(name="SAY")) == "ok"

    @pytest.mark.asyncio
    async def test_unknown_command(self, app: Application, session: Session) -> None:
        with pytest.raises(CommandNotFoundError, match='command "missing" not found'):
            await app.dispatch(session, Argv(name="missing"))

    @pytest.mark.asyncio
    async def test_disposed_command_is_not_found(
        self, app: Application, session: Session
    ) -> None:
        command = app.command("echo")
        command.dispose()

        with pytest.raises(CommandNotFoundError):
            await app.dispatch(session, Argv(command=command))

    @pytest.mark.asyncio
    async def test_parser_error_skips_storage(
        self,
        app: Application,
        session: Session,
        database: InMemoryDatabase,
        replies: list[str],
    ) -> None:
        app.command("echo", max_usage=3)

        result = await app.dispatch(session, Argv(name="echo", error="unbalanced quote"))

        assert result == "unbalanced quote"
        assert replies == ["unbalanced quote"]
        assert await database.get("user", {}) == []

    @pytest.mark.asyncio
    async def test_action_sees_loaded_records(
        self, app: Application, session: Session, database: InMemoryDatabase
    ) -> None:
        await database.create_user("discord", "42", {"authority": 2, "name": "alice"})
        command = app.command("whoami").user_fields(["name"]).channel_fields(["assignee"])
        command.action(
            lambda argv: f"{argv.session.user['name']}@{argv.session.channel['assignee']!r}"
        )

        assert await app.dispatch(session, Argv(name="whoami")) == "alice@''"
        assert await database.get_channel("discord", "100") is not None

    @pytest.mark.asyncio
    async def test_changes_are_flushed_when_fallback_fails(
        self, app: Application, session: Session, database: InMemoryDatabase
    ) -> None:
        async def forward(argv):
            return await argv.next()

        async def fallback(next):
            raise RuntimeError("downstream failure")

        app.command("echo", max_usage=3).action(forward)

        with pytest.raises(RuntimeError):
            await app.dispatch(session, Argv(name="echo"), fallback)

        user = await database.get_user("discord", "42", ["usage"])
        assert user["usage"]["echo"] == 1

    @pytest.mark.asyncio
    async def test_without_database(self, replies: list[str]) -> None:
        app = Application()
        app.command("echo", max_usage=1).action(lambda argv: "ok")
        session = app.create_session("discord", "42", sender=replies.append)

        assert await app.dispatch(session, Argv(name="echo")) == "ok"
        assert await app.dispatch(session, Argv(name="echo")) == "ok"


class TestDispatchShortcut:
    @pytest.mark.asyncio
    async def test_matching_shortcut_dispatches(
        self, app: Application, session: Session, replies: list[str]
    ) -> None:
        app.command("echo <message:text>").shortcut("hi", args=["hello"]).action(
            lambda argv, *words: " ".join(words)
        )

        assert await app.dispatch_shortcut(session, "hi") == "hello"
        assert replies == ["hello"]

    @pytest.mark.asyncio
    async def test_no_match_returns_none(self, app: Application, session: Session) -> None:
        assert await app.dispatch_shortcut(session, "anything") is None
