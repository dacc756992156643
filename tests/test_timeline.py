import pytest

from breathwork.core.config import BreathConfig, InvalidConfiguration
from breathwork.core.timeline import (
    BreathPhase,
    HoldPhase,
    PhaseKind,
    aggregate_stats,
    build_timeline,
    resolve_snapshot,
)


def scenario_a() -> BreathConfig:
    return BreathConfig(
        rounds=2, breaths_per_round=3, inhale_sec=2, exhale_sec=3, hold_goal_sec=10, recovery_goal_sec=15
    )


def scenario_b() -> BreathConfig:
    return BreathConfig(
        rounds=1, breaths_per_round=1, inhale_sec=2, exhale_sec=3, hold_goal_sec=5, recovery_goal_sec=4
    )


def test_build_totals_and_phase_count() -> None:
    timeline = build_timeline(scenario_a())

    assert timeline.total_rounds == 2
    assert timeline.breaths_per_round == 3
    assert len(timeline.phases) == 16
    assert timeline.total_duration_sec == 80


@pytest.mark.parametrize(
    "config",
    [
        BreathConfig(rounds=1, breaths_per_round=1, inhale_sec=1, exhale_sec=1, hold_goal_sec=0, recovery_goal_sec=0),
        BreathConfig(rounds=4, breaths_per_round=7, inhale_sec=1.5, exhale_sec=2.5, hold_goal_sec=45, recovery_goal_sec=12),
        BreathConfig(),
    ],
)
def test_total_duration_and_length_formula(config: BreathConfig) -> None:
    timeline = build_timeline(config)
    expected = config.rounds * config.breaths_per_round * (config.inhale_sec + config.exhale_sec) + config.rounds * (
        config.hold_goal_sec + config.recovery_goal_sec
    )

    assert timeline.total_duration_sec == pytest.approx(expected)
    assert len(timeline.phases) == config.rounds * (2 * config.breaths_per_round + 2)


def test_round_layout_is_breaths_then_hold_then_recovery() -> None:
    timeline = build_timeline(scenario_a())
    first_round = timeline.phases[:8]

    assert [p.kind for p in first_round] == [PhaseKind.INHALE, PhaseKind.EXHALE] * 3 + [
        PhaseKind.HOLD,
        PhaseKind.RECOVERY,
    ]
    assert [p.breath_index for p in first_round[:6]] == [1, 1, 2, 2, 3, 3]
    assert all(p.round_index == 1 for p in first_round)
    assert all(p.round_index == 2 for p in timeline.phases[8:])

    hold, recovery = first_round[6], first_round[7]
    assert isinstance(hold, HoldPhase) and hold.hold_goal_sec == 10 and hold.duration_sec == 10
    assert isinstance(recovery, HoldPhase) and recovery.hold_goal_sec == 15
    assert isinstance(first_round[0], BreathPhase)
    assert not hasattr(first_round[0], "hold_goal_sec")
    assert not hasattr(hold, "breath_index")


def test_build_is_deterministic() -> None:
    assert build_timeline(scenario_a()) == build_timeline(scenario_a())


@pytest.mark.parametrize(
    "field, value",
    [
        ("rounds", 0),
        ("breaths_per_round", 0),
        ("inhale_sec", 0),
        ("exhale_sec", -1),
        ("hold_goal_sec", -0.5),
        ("recovery_goal_sec", -1),
    ],
)
def test_build_rejects_invalid_config(field: str, value: float) -> None:
    config = BreathConfig(**{field: value})

    with pytest.raises(InvalidConfiguration, match=field):
        build_timeline(config)


def test_zero_goal_holds_are_allowed() -> None:
    timeline = build_timeline(BreathConfig(hold_goal_sec=0, recovery_goal_sec=0))

    assert timeline.phases[-1].duration_sec == 0


def test_resolve_at_zero_is_first_phase() -> None:
    timeline = build_timeline(scenario_a())
    snapshot = resolve_snapshot(timeline, 0)

    assert snapshot.current_phase == timeline.phases[0]
    assert snapshot.phase_index == 0
    assert snapshot.phase_elapsed_sec == 0
    assert snapshot.next_phase == timeline.phases[1]
    assert snapshot.is_complete is False


def test_resolve_within_and_on_boundaries() -> None:
    timeline = build_timeline(scenario_b())

    inhale = resolve_snapshot(timeline, 1000)
    assert inhale.current_phase.kind == PhaseKind.INHALE
    assert inhale.phase_remaining_sec == 1

    exhale = resolve_snapshot(timeline, 2000)
    assert exhale.current_phase.kind == PhaseKind.EXHALE
    assert exhale.phase_elapsed_sec == 0

    hold = resolve_snapshot(timeline, 6000)
    assert hold.current_phase.kind == PhaseKind.HOLD
    assert hold.phase_elapsed_sec == 1
    assert hold.round_index == 1
    assert hold.breath_index is None
    assert hold.next_phase is not None and hold.next_phase.kind == PhaseKind.RECOVERY


def test_resolve_at_total_is_complete_on_last_phase() -> None:
    timeline = build_timeline(scenario_a())
    snapshot = resolve_snapshot(timeline, timeline.total_duration_sec * 1000)

    assert snapshot.is_complete is True
    assert snapshot.current_phase == timeline.phases[-1]
    assert snapshot.phase_remaining_sec == 0
    assert snapshot.next_phase is None
    assert snapshot.progress == 1.0


def test_resolve_clamps_out_of_range_elapsed() -> None:
    timeline = build_timeline(scenario_b())

    early = resolve_snapshot(timeline, -5000)
    late = resolve_snapshot(timeline, 999_000)

    assert early.phase_index == 0 and early.global_elapsed_sec == 0
    assert late.is_complete is True
    assert late.global_elapsed_sec == timeline.total_duration_sec
    assert late.phase_elapsed_sec == timeline.phases[-1].duration_sec


def test_resolve_never_moves_backwards() -> None:
    timeline = build_timeline(scenario_a())
    indices = [resolve_snapshot(timeline, ms).phase_index for ms in range(0, 85_000, 250)]

    assert indices == sorted(indices)
    assert indices[-1] == len(timeline.phases) - 1


def test_resolve_and_aggregate_are_idempotent() -> None:
    timeline = build_timeline(scenario_a())

    assert resolve_snapshot(timeline, 33_300) == resolve_snapshot(timeline, 33_300)
    assert aggregate_stats(timeline, 33_300) == aggregate_stats(timeline, 33_300)


def test_aggregate_scenarios() -> None:
    timeline = build_timeline(scenario_b())

    mid = aggregate_stats(timeline, 5000)
    assert mid.rounds_completed == 0
    assert mid.longest_hold_sec == 0

    held = aggregate_stats(timeline, 10_000)
    assert held.longest_hold_sec == 5
    assert held.rounds_completed == 0

    full = aggregate_stats(timeline, 14_000)
    assert full.rounds_completed == 1
    assert full.total_duration_sec == 14


def test_aggregate_rounds_half_up_and_caps_elapsed() -> None:
    timeline = build_timeline(scenario_b())

    assert aggregate_stats(timeline, 7500).longest_hold_sec == 3
    assert aggregate_stats(timeline, 2500).total_duration_sec == 3
    assert aggregate_stats(timeline, 60_000).total_duration_sec == 14


def test_rounds_completed_is_monotonic_and_bounded() -> None:
    timeline = build_timeline(scenario_a())
    counts = [aggregate_stats(timeline, ms).rounds_completed for ms in range(0, 90_000, 500)]

    assert counts == sorted(counts)
    assert max(counts) == timeline.total_rounds
