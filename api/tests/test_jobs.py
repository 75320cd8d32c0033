from datetime import datetime, timezone

from dailymatch import repo
from dailymatch.jobs import run_daily_sweep, run_sweep_loop


def test_run_daily_sweep_uses_its_own_session(db, seed, clock):
    alice = seed.user("alice")
    bob = seed.user("bob")
    session_id = seed.session(alice, bob, day_key="2026-03-09")

    result = run_daily_sweep(clock)

    assert result.expired_count == 1
    assert repo.get_session(db, session_id)["state"] == "expired"


def test_sweep_loop_sleeps_until_each_boundary(db, seed, clock):
    alice = seed.user("alice")
    bob = seed.user("bob")
    session_id = seed.session(alice, bob)
    waits = []

    def fake_sleep(seconds):
        waits.append(seconds)
        clock.current = datetime(2026, 3, 10, 15, 0, 1, tzinfo=timezone.utc)

    runs = run_sweep_loop(clock, sleep=fake_sleep, max_runs=1)

    assert runs == 1
    assert waits == [12 * 3600]
    assert repo.get_session(db, session_id)["state"] == "expired"
