import asyncio

import pytest

from core.errors import DeckExhausted, PlayerAlreadySeated, PlayerNotFound, SessionNotFound, TableFull
from core.models import AdvancePhase, JoinPlayer, KickPlayer, Phase

from .helpers import advance_times, all_visible_cards, create_store


def test_create_session_starts_waiting_and_empty():
    store, session_id, _ = create_store(max_players=6, name="  Main  ")
    snapshot = store.get_snapshot(session_id)
    assert snapshot.phase == Phase.WAITING
    assert snapshot.players == ()
    assert snapshot.hand_number == 0
    assert snapshot.dealer_seat is None
    assert snapshot.max_players == 6
    assert snapshot.name == "Main"
    assert snapshot.version == 0


@pytest.mark.parametrize("max_players", [0, 24])
def test_create_session_rejects_undealable_sizes(max_players):
    store, _, _ = create_store()
    with pytest.raises(ValueError):
        store.create_session(max_players)


def test_unknown_session_raises_session_not_found():
    store, _, _ = create_store()
    with pytest.raises(SessionNotFound):
        store.get_snapshot("missing")
    with pytest.raises(SessionNotFound):
        asyncio.run(store.advance("missing"))


def test_two_player_example_hand():
    store, session_id, (a, b) = create_store(max_players=2, players=2)

    snapshot = advance_times(store, session_id, 1)
    assert snapshot.phase == Phase.PRE_FLOP
    assert all(len(seat.pocket) == 2 for seat in snapshot.players)
    assert snapshot.community == ()
    assert snapshot.seat_of(a).is_dealer

    snapshot = advance_times(store, session_id, 1)
    assert snapshot.phase == Phase.FLOP
    assert len(snapshot.community) == 3

    snapshot = advance_times(store, session_id, 3)
    assert snapshot.phase == Phase.SHUFFLE
    assert snapshot.hand_number == 1
    assert all_visible_cards(snapshot) == []

    snapshot = advance_times(store, session_id, 1)
    assert snapshot.phase == Phase.WAITING

    snapshot = advance_times(store, session_id, 1)
    assert snapshot.phase == Phase.PRE_FLOP
    assert snapshot.hand_number == 2
    assert snapshot.seat_of(b).is_dealer
    assert not snapshot.seat_of(a).is_dealer


def test_six_advances_complete_one_cycle():
    store, session_id, _ = create_store(max_players=2, players=2)
    snapshot = advance_times(store, session_id, 6)
    assert snapshot.phase == Phase.WAITING
    assert snapshot.hand_number == 1
    assert all_visible_cards(snapshot) == []
    assert snapshot.cards_remaining == 0


def test_snapshots_are_not_touched_by_later_mutations():
    store, session_id, _ = create_store(players=2)
    before = store.get_snapshot(session_id)
    advance_times(store, session_id, 2)
    assert before.phase == Phase.WAITING
    assert before.community == ()
    assert all(seat.pocket == () for seat in before.players)


def test_cards_are_never_in_two_places():
    store, session_id, _ = create_store(max_players=8, players=8)
    for _ in range(12):
        snapshot = advance_times(store, session_id, 1)
        cards = all_visible_cards(snapshot)
        assert len(cards) == len(set(cards))
        if snapshot.phase in (Phase.PRE_FLOP, Phase.FLOP, Phase.TURN, Phase.RIVER):
            assert len(cards) + snapshot.cards_remaining == 52


def test_table_full_leaves_roster_unchanged():
    store, session_id, _ = create_store(max_players=2, players=2)
    before = store.get_snapshot(session_id)
    with pytest.raises(TableFull):
        asyncio.run(store.join(session_id, alias="Late"))
    after = store.get_snapshot(session_id)
    assert after is before
    assert len(after.players) == 2


def test_failed_advance_commits_nothing(monkeypatch):
    store, session_id, _ = create_store(players=3)
    before = store.get_snapshot(session_id)

    def broken_deck(seed=None):
        from core.cards import Deck, build_deck

        return Deck(build_deck()[:4])

    monkeypatch.setattr("core.phases.new_shuffled_deck", broken_deck)
    with pytest.raises(DeckExhausted):
        asyncio.run(store.advance(session_id))

    after = store.get_snapshot(session_id)
    assert after is before
    assert after.phase == Phase.WAITING
    assert after.hand_number == 0
    assert all(seat.pocket == () for seat in after.players)


def test_kick_dealer_keeps_every_role_assigned():
    store, session_id, ids = create_store(players=4)
    snapshot = advance_times(store, session_id, 1)
    dealer_id = snapshot.players[snapshot.dealer_seat].player_id
    snapshot = asyncio.run(store.kick(session_id, dealer_id))
    assert snapshot.seat_of(dealer_id) is None
    assert sum(seat.is_dealer for seat in snapshot.players) == 1
    assert sum(seat.is_small_blind for seat in snapshot.players) == 1
    assert sum(seat.is_big_blind for seat in snapshot.players) == 1


def test_kick_last_player_keeps_phase_and_clears_roles():
    store, session_id, (only,) = create_store(players=1)
    advance_times(store, session_id, 2)
    snapshot = asyncio.run(store.kick(session_id, only))
    assert snapshot.phase == Phase.FLOP
    assert snapshot.players == ()
    assert snapshot.dealer_seat is None
    assert snapshot.small_blind_seat is None
    assert snapshot.big_blind_seat is None


def test_player_snapshot_narrows_to_one_player():
    store, session_id, (a, b) = create_store(players=2)
    advance_times(store, session_id, 1)
    view = store.get_player_snapshot(session_id, b)
    assert view.player_id == b
    assert len(view.seat.pocket) == 2
    assert view.seat.is_small_blind
    payload = view.to_payload()
    assert payload["table"]["phase"] == "Pre-Flop"
    assert payload["table"]["is_small_blind"] is True
    with pytest.raises(PlayerNotFound):
        store.get_player_snapshot(session_id, "ghost")


def test_find_player_and_close_session():
    store, session_id, (a,) = create_store(players=1)
    other = store.create_session(4)
    assert store.find_player(a) == session_id
    assert {s.session_id for s in store.list_sessions()} == {session_id, other}
    asyncio.run(store.close_session(session_id))
    assert session_id not in store
    with pytest.raises(PlayerNotFound):
        store.find_player(a)


def test_concurrent_advances_are_totally_ordered():
    store, session_id, _ = create_store(players=2)

    async def scenario():
        return await asyncio.gather(*(store.mutate(session_id, AdvancePhase(seed=i)) for i in range(13)))

    results = asyncio.run(scenario())
    assert sorted(s.version for s in results) == list(range(3, 16))
    final = store.get_snapshot(session_id)
    assert final.version == 15
    # 13 advances = two full cycles plus one deal.
    assert final.phase == Phase.PRE_FLOP
    assert final.hand_number == 3


def test_queued_writers_run_in_arrival_order_and_readers_do_not_wait():
    store, session_id, _ = create_store(max_players=8)

    async def scenario():
        lock = store._sessions[session_id].lock
        await lock.acquire()
        tasks = [asyncio.create_task(store.mutate(session_id, JoinPlayer(alias=f"P{i}"))) for i in range(5)]
        await asyncio.sleep(0)
        during = store.get_snapshot(session_id)
        lock.release()
        results = await asyncio.gather(*tasks)
        return during, results

    during, results = asyncio.run(scenario())
    assert during.players == ()
    assert [s.version for s in results] == [1, 2, 3, 4, 5]
    final = store.get_snapshot(session_id)
    assert [seat.alias for seat in final.players] == ["P0", "P1", "P2", "P3", "P4"]


def test_readers_racing_writers_see_whole_snapshots():
    store, session_id, _ = create_store(max_players=6, players=6)
    seen = []

    async def reader():
        for _ in range(200):
            seen.append(store.get_snapshot(session_id))
            await asyncio.sleep(0)

    async def writer():
        for step in range(30):
            await store.mutate(session_id, AdvancePhase(seed=step))
            await asyncio.sleep(0)

    async def scenario():
        await asyncio.gather(reader(), writer(), reader())

    asyncio.run(scenario())
    for snapshot in seen:
        cards = all_visible_cards(snapshot)
        assert len(cards) == len(set(cards))
        expected_pockets = 2 if snapshot.phase in (Phase.PRE_FLOP, Phase.FLOP, Phase.TURN, Phase.RIVER) else 0
        assert all(len(seat.pocket) == expected_pockets for seat in snapshot.players)


def test_sessions_do_not_block_each_other():
    store, first, _ = create_store(players=2)
    second = store.create_session(4)

    async def scenario():
        lock = store._sessions[first].lock
        await lock.acquire()
        try:
            return await asyncio.wait_for(store.join(second, alias="Free"), timeout=1)
        finally:
            lock.release()

    _, snapshot = asyncio.run(scenario())
    assert len(snapshot.players) == 1


def test_operations_carry_their_own_player_id():
    store, session_id, _ = create_store()
    op = JoinPlayer(alias="Z")
    snapshot = asyncio.run(store.mutate(session_id, op))
    assert snapshot.seat_of(op.player_id).alias == "Z"
    snapshot = asyncio.run(store.mutate(session_id, KickPlayer(player_id=op.player_id)))
    assert snapshot.seat_of(op.player_id) is None


def test_replayed_join_is_rejected_without_commit():
    store, session_id, _ = create_store()
    op = JoinPlayer(alias="Z")
    first = asyncio.run(store.mutate(session_id, op))
    with pytest.raises(PlayerAlreadySeated):
        asyncio.run(store.mutate(session_id, op))
    after = store.get_snapshot(session_id)
    assert after is first
    assert len(after.players) == 1
