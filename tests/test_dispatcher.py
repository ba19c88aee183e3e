"""Tests for addressed event delivery."""

import pytest

from cexgate.relay.dispatcher import Dispatcher
from cexgate.relay.session import GatewaySession


class TestDispatcher:
    """Tests for send/emit routing."""

    @pytest.mark.asyncio
    async def test_emit_reaches_every_session_of_identity(self, fake_channel_class):
        """Events addressed to an identity reach all its sessions and nobody else."""
        dispatcher = Dispatcher()
        a1 = GatewaySession("alice", fake_channel_class())
        a2 = GatewaySession("alice", fake_channel_class())
        bob = GatewaySession("bob", fake_channel_class())
        for session in (a1, a2, bob):
            dispatcher.attach(session)

        delivered = await dispatcher.emit("alice", "update-portfolio", {"success": True})

        assert delivered == 2
        assert a1.channel.events("update-portfolio") == [{"success": True}]
        assert a2.channel.events("update-portfolio") == [{"success": True}]
        assert bob.channel.sent == []

    @pytest.mark.asyncio
    async def test_emit_to_unknown_identity_delivers_nothing(self):
        assert await Dispatcher().emit("nobody", "x", {}) == 0

    @pytest.mark.asyncio
    async def test_send_drops_for_closed_channel(self, fake_channel_class):
        session = GatewaySession("alice", fake_channel_class(closed=True))
        assert await Dispatcher().send(session, "ticker", {}) is False

    @pytest.mark.asyncio
    async def test_send_drops_on_connection_error(self, fake_channel_class):
        """A socket failing mid-send is dropped, not raised."""
        session = GatewaySession("alice", fake_channel_class(error=ConnectionResetError("gone")))
        assert await Dispatcher().send(session, "ticker", {}) is False

    @pytest.mark.asyncio
    async def test_detached_session_not_addressed(self, fake_channel_class):
        dispatcher = Dispatcher()
        session = GatewaySession("alice", fake_channel_class())
        dispatcher.attach(session)
        dispatcher.detach(session)

        assert await dispatcher.emit("alice", "x", 1) == 0
        assert dispatcher.session_count == 0

    def test_attach_after_close_rejected(self):
        dispatcher = Dispatcher()
        dispatcher.close()
        with pytest.raises(RuntimeError):
            dispatcher.attach(GatewaySession("alice"))
