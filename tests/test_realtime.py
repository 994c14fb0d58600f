# Broadcaster WebSocket : enveloppe, fan-out, purge des connexions mortes
import asyncio
from decimal import Decimal

import pytest

from monojar.core.realtime import NEW_DONATION, Broadcaster, donation_envelope
from tests.helpers import make_donation


class FakeSocket:
    def __init__(self, fail: bool = False) -> None:
        self.accepted = False
        self.closed = False
        self.fail = fail
        self.messages = []

    async def accept(self) -> None:
        self.accepted = True

    async def send_json(self, payload) -> None:
        if self.fail:
            raise RuntimeError("connection reset")
        self.messages.append(payload)

    async def close(self) -> None:
        self.closed = True


def test_envelope_uses_wire_names():
    donation = make_donation("tx1", name="Ivan", amount=Decimal("150.50"), counter_name="Іван П.")

    envelope = donation_envelope(donation)

    assert envelope["type"] == NEW_DONATION
    assert envelope["data"]["id"] == "tx1"
    assert envelope["data"]["counterName"] == "Іван П."
    assert envelope["data"]["amount"] == 150.5


@pytest.mark.asyncio
async def test_broadcast_reaches_every_subscriber():
    broadcaster = Broadcaster()
    a, b = FakeSocket(), FakeSocket()
    await broadcaster.connect(a)
    await broadcaster.connect(b)

    delivered = await broadcaster.broadcast_donation(make_donation("tx1"))

    assert delivered == 2
    assert a.accepted and b.accepted
    assert a.messages == b.messages
    assert a.messages[0]["type"] == "new_donation"


@pytest.mark.asyncio
async def test_dead_socket_is_purged():
    broadcaster = Broadcaster()
    alive, dead = FakeSocket(), FakeSocket(fail=True)
    await broadcaster.connect(alive)
    await broadcaster.connect(dead)

    delivered = await broadcaster.broadcast_donation(make_donation("tx1"))

    assert delivered == 1
    assert broadcaster.count() == 1
    assert len(alive.messages) == 1


@pytest.mark.asyncio
async def test_broadcast_without_subscribers():
    assert await Broadcaster().broadcast_donation(make_donation("tx1")) == 0


@pytest.mark.asyncio
async def test_disconnect_and_close_all():
    broadcaster = Broadcaster()
    a, b = FakeSocket(), FakeSocket()
    await broadcaster.connect(a)
    await broadcaster.connect(b)

    await broadcaster.disconnect(a)
    assert broadcaster.count() == 1

    await broadcaster.close_all()
    assert broadcaster.count() == 0
    assert b.closed


def test_envelope_amounts_are_numbers():
    whole = donation_envelope(make_donation("tx1", amount=Decimal("100.00")))
    fraction = donation_envelope(make_donation("tx2", amount=Decimal("50.50")))

    assert whole["data"]["amount"] == 100
    assert isinstance(whole["data"]["amount"], int)
    assert fraction["data"]["amount"] == 50.5
    assert isinstance(fraction["data"]["amount"], float)


class SlowAcceptSocket(FakeSocket):
    """accept() bloqué jusqu’à release ; send_json échoue tant que non accepté."""

    def __init__(self) -> None:
        super().__init__()
        self.release = asyncio.Event()

    async def accept(self) -> None:
        await self.release.wait()
        self.accepted = True

    async def send_json(self, payload) -> None:
        if not self.accepted:
            raise RuntimeError("WebSocket is not connected. Need to call accept first.")
        self.messages.append(payload)


@pytest.mark.asyncio
async def test_broadcast_during_handshake_keeps_subscriber():
    broadcaster = Broadcaster()
    ws = SlowAcceptSocket()

    connecting = asyncio.create_task(broadcaster.connect(ws))
    await asyncio.sleep(0)

    # Handshake en cours : pas encore abonné, donc rien à purger
    assert await broadcaster.broadcast_donation(make_donation("tx1")) == 0

    ws.release.set()
    await connecting

    assert await broadcaster.broadcast_donation(make_donation("tx2")) == 1
    assert broadcaster.count() == 1
    assert [m["data"]["id"] for m in ws.messages] == ["tx2"]
