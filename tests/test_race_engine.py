import logging
from types import SimpleNamespace

from derby_race.config import FALLBACK_HORSE_SPEED, FINISH_LINE_POSITION, ROUND_DELAY_MS, ROUND_DISTANCES
from derby_race.engine import (
    Horse,
    ManualFrameHost,
    RaceEngine,
    RaceRunState,
    RaceStatus,
    TelemetryCollector,
)
from derby_race.lib import make_rng


def _race(condition: int = 100, seed: int = 1, telemetry=None):
    horses = [Horse(horse_id=i, name=f"Horse {i}", color="#000000", condition=condition) for i in range(1, 21)]
    roster = SimpleNamespace(all_horses=lambda: list(horses))
    host = ManualFrameHost()
    engine = RaceEngine(roster, host, rng=make_rng(seed), telemetry=telemetry)
    engine.generate_schedule()
    return engine, host


def _round_ids(engine):
    return [horse.horse_id for horse in engine.current_round_data.horses]


def test_initial_state_is_idle():
    engine, host = _race()
    assert engine.status is RaceStatus.IDLE
    assert engine.current_round == 0
    assert engine.current_round_number == 1
    assert engine.current_distance == 1200
    assert engine.is_running is False
    assert engine.is_paused is False
    assert dict(engine.positions) == {}
    assert engine.state.frame_handle is None


def test_start_without_schedule_is_noop():
    roster = SimpleNamespace(all_horses=lambda: [])
    engine = RaceEngine(roster, ManualFrameHost())
    engine.start()
    assert engine.status is RaceStatus.IDLE
    assert engine.is_running is False


def test_start_initialises_round_and_runs_first_tick():
    engine, host = _race()
    engine.start()

    assert engine.status is RaceStatus.RUNNING
    assert sorted(engine.positions) == sorted(_round_ids(engine))
    assert sorted(engine.state.speeds) == sorted(_round_ids(engine))
    assert all(pos > 0.0 for pos in engine.positions.values())
    assert host.pending_frames == 1


def test_start_while_running_is_noop():
    engine, host = _race()
    engine.start()
    speeds = dict(engine.state.speeds)
    positions = dict(engine.positions)

    engine.start()

    assert engine.state.speeds == speeds
    assert dict(engine.positions) == positions
    assert host.pending_frames == 1


def test_pause_is_noop_unless_running():
    engine, host = _race()
    engine.pause()
    assert engine.status is RaceStatus.IDLE
    assert engine.is_paused is False

    engine.start()
    engine.pause()
    assert engine.status is RaceStatus.PAUSED
    engine.pause()
    assert engine.status is RaceStatus.PAUSED


def test_pause_cancels_pending_frame_and_freezes_positions():
    engine, host = _race()
    engine.start()
    host.run_frames(5)
    engine.pause()
    frozen = dict(engine.positions)

    assert engine.state.frame_handle is None
    assert host.pending_frames == 0

    host.run_frames(20)
    assert dict(engine.positions) == frozen


def test_resume_keeps_positions_and_speeds():
    engine, host = _race()
    engine.start()
    host.run_frames(5)
    engine.pause()
    speeds = dict(engine.state.speeds)
    frozen = dict(engine.positions)

    engine.start()

    assert engine.status is RaceStatus.RUNNING
    assert engine.state.speeds == speeds
    for horse_id, pos in engine.positions.items():
        assert pos >= frozen[horse_id]
    assert host.pending_frames == 1


def test_toggle_routes_by_state():
    engine, host = _race()
    engine.toggle()
    assert engine.status is RaceStatus.RUNNING
    engine.toggle()
    assert engine.status is RaceStatus.PAUSED
    engine.toggle()
    assert engine.status is RaceStatus.RUNNING


def test_first_round_produces_ranked_results():
    telemetry = TelemetryCollector()
    engine, host = _race(telemetry=telemetry)

    engine.start()
    round_ids = _round_ids(engine)
    assert host.run_until(lambda: engine.current_round == 1)

    results = engine.get_round_results(0)
    assert results is not None
    assert results.round == 1
    assert results.distance == 1200
    assert [entry.position for entry in results.results] == list(range(1, 11))
    assert sorted(results.finish_order) == sorted(round_ids)

    # Rank order must follow the tick each horse first crossed the line.
    first_finish = {}
    for frame in telemetry.export():
        for horse in frame.horses:
            if horse.is_finished and horse.horse_id not in first_finish:
                first_finish[horse.horse_id] = frame.tick
    ticks = [first_finish[horse_id] for horse_id in results.finish_order]
    assert ticks == sorted(ticks)


def test_round_finishes_only_when_every_horse_crossed():
    engine, host = _race()
    original = engine._finish_round
    seen = []

    def checked_finish():
        seen.append(dict(engine.positions))
        original()

    engine._finish_round = checked_finish
    engine.start()
    assert host.run_until(lambda: engine.current_round == 1)

    assert len(seen) == 1
    assert all(pos >= FINISH_LINE_POSITION for pos in seen[0].values())


def test_positions_cleared_between_rounds_and_next_round_waits_for_delay():
    engine, host = _race()
    engine.start()
    assert host.run_until(lambda: engine.current_round == 1)

    assert engine.status is RaceStatus.RUNNING
    assert dict(engine.positions) == {}
    assert engine.state.speeds == {}
    assert engine.state.finish_times == {}
    assert host.pending_timers == 1

    host.advance(ROUND_DELAY_MS - 10)
    assert dict(engine.positions) == {}

    host.advance(20)
    assert sorted(engine.positions) == sorted(_round_ids(engine))
    assert engine.current_distance == 1400


def test_pause_during_round_delay_suppresses_next_round():
    engine, host = _race()
    engine.start()
    assert host.run_until(lambda: engine.current_round == 1)

    engine.pause()
    host.advance(ROUND_DELAY_MS * 2)
    assert engine.status is RaceStatus.PAUSED
    assert dict(engine.positions) == {}

    engine.start()
    assert engine.status is RaceStatus.RUNNING
    assert sorted(engine.positions) == sorted(_round_ids(engine))
    assert host.pending_frames == 1
    assert host.pending_timers == 0


def test_stale_delay_callback_does_not_start_round_when_paused():
    engine, host = _race()
    engine.start()
    assert host.run_until(lambda: engine.current_round == 1)
    engine.state.is_paused = True  # flags flipped without cancelling the timer

    host.advance(ROUND_DELAY_MS * 2)
    assert host.pending_timers == 0
    assert dict(engine.positions) == {}


def test_reset_during_round_delay():
    engine, host = _race()
    schedule = engine.schedule
    engine.start()
    assert host.run_until(lambda: engine.current_round == 1)

    engine.reset()
    host.advance(ROUND_DELAY_MS * 2)

    assert engine.status is RaceStatus.IDLE
    assert engine.current_round == 0
    assert dict(engine.positions) == {}
    assert host.pending_timers == 0
    assert engine.schedule is schedule
    assert len(engine.results) == 1


def test_reset_is_idempotent():
    engine, host = _race()
    engine.start()
    host.run_frames(10)

    engine.reset()
    once = RaceRunState(**vars(engine.state))
    engine.reset()

    assert engine.state == once
    assert engine.state == RaceRunState()
    assert host.pending_frames == 0


def test_full_race_completes_after_six_rounds():
    engine, host = _race()
    engine.start()
    assert host.run_until(lambda: engine.is_complete)

    assert engine.current_round == 6
    assert engine.is_running is False
    assert engine.status is RaceStatus.COMPLETE
    assert [results.distance for results in engine.results] == list(ROUND_DISTANCES)
    assert [results.round for results in engine.results] == [1, 2, 3, 4, 5, 6]
    assert engine.current_round_data is None
    assert engine.current_distance == 0
    assert engine.get_round_results(6) is None

    engine.start()
    engine.toggle()
    assert engine.status is RaceStatus.COMPLETE
    assert host.pending_frames == 0


def test_missing_speed_uses_fallback():
    engine, host = _race()
    engine.start()
    before = dict(engine.positions)
    engine.state.speeds.clear()

    host.run_frames(1)

    for horse_id, pos in engine.positions.items():
        delta = pos - before[horse_id]
        assert FALLBACK_HORSE_SPEED * 0.5 - 1e-9 <= delta <= FALLBACK_HORSE_SPEED * 0.8 + 1e-9


def test_ranking_places_unfinished_last_and_keeps_round_order_on_ties(caplog):
    engine, host = _race()
    engine.start()
    engine.pause()
    ids = _round_ids(engine)
    engine.state.positions = {horse_id: float(FINISH_LINE_POSITION) for horse_id in ids}
    engine.state.finish_times = {horse_id: 10.0 for horse_id in ids[1:]}
    engine.state.finish_times[ids[5]] = 5.0

    with caplog.at_level(logging.WARNING):
        engine._finish_round()

    order = engine.get_round_results(0).finish_order
    assert order[0] == ids[5]
    assert order[-1] == ids[0]
    assert list(order[1:-1]) == [horse_id for horse_id in ids[1:] if horse_id != ids[5]]
    assert "no finish time" in caplog.text


def test_finish_time_recorded_once_per_horse():
    engine, host = _race()
    original = engine._finish_round
    final_times = {}

    def capture_finish():
        final_times.update(engine.state.finish_times)
        original()

    engine._finish_round = capture_finish
    engine.start()
    recorded = {}
    while engine.current_round == 0:
        host.run_frames(1)
        for horse_id, stamp in engine.state.finish_times.items():
            assert recorded.setdefault(horse_id, stamp) == stamp

    assert len(final_times) == 10
    for horse_id, stamp in recorded.items():
        assert final_times[horse_id] == stamp


def test_telemetry_records_each_tick():
    telemetry = TelemetryCollector()
    engine, host = _race(telemetry=telemetry)
    engine.start()
    host.run_frames(4)

    frames = telemetry.export()
    assert len(frames) == 5
    assert [frame.tick for frame in frames] == [0, 1, 2, 3, 4]
    assert all(len(frame.horses) == 10 for frame in frames)
    assert frames[0].round == 1
    assert telemetry.to_dicts()[0]["distance"] == 1200
