import io

import pytest

from scheduler import (
    NEW,
    TERMINATED,
    Process,
    ProcessSet,
    generate_processes,
    run_all,
    run_fifo,
    run_sjf,
    run_srt,
)


def make_set(*specs):
    return ProcessSet([Process(f"p{i + 1}", a, s) for i, (a, s) in enumerate(specs)])


def test_short_job_arriving_late_preempts_only_under_srt():
    procs = make_set((0, 5), (1, 1))

    fifo = run_fifo(procs)
    assert fifo.completions == [("p1", 5), ("p2", 5)]
    assert fifo.att == 5.0

    sjf = run_sjf(procs)
    assert sjf.completions == [("p1", 5), ("p2", 5)]

    srt = run_srt(procs)
    assert srt.completions == [("p2", 1), ("p1", 6)]
    assert srt.att == 3.5
    assert srt.timeline == [("p1", 0, 1), ("p2", 1, 2), ("p1", 2, 6)]


@pytest.mark.parametrize("engine", [run_fifo, run_sjf, run_srt])
def test_single_process_turnaround_is_its_service_time(engine):
    result = engine(make_set((7, 4)))
    assert result.completions == [("p1", 4)]
    assert result.att == 4.0


def test_disjoint_processes_give_identical_results():
    procs = make_set((0, 3), (10, 2), (20, 5))
    results = run_all(procs)
    expected = [("p1", 3), ("p2", 2), ("p3", 5)]
    for result in results.values():
        assert result.completions == expected
        assert result.att == pytest.approx(10 / 3)
    assert results["SRT"].timeline == [("p1", 0, 3), ("p2", 10, 12), ("p3", 20, 25)]


def test_idle_gap_before_first_arrival_and_between_processes():
    result = run_fifo(make_set((5, 2), (10, 1)))
    assert result.timeline == [("p1", 5, 7), ("p2", 10, 11)]
    assert result.completions == [("p1", 2), ("p2", 1)]


def test_sjf_reselects_shortest_arrived_at_completion():
    procs = make_set((0, 4), (1, 6), (2, 2))

    fifo = run_fifo(procs)
    assert fifo.completions == [("p1", 4), ("p2", 9), ("p3", 10)]

    sjf = run_sjf(procs)
    assert sjf.completions == [("p1", 4), ("p3", 4), ("p2", 11)]
    assert sjf.att == pytest.approx(19 / 3)


def test_sjf_ties_go_to_earlier_arrival():
    sjf = run_sjf(make_set((0, 3), (1, 2), (2, 2)))
    assert sjf.completions == [("p1", 3), ("p2", 4), ("p3", 5)]


def test_sjf_picks_shortest_among_simultaneous_first_arrivals():
    procs = make_set((0, 5), (0, 1))
    assert run_fifo(procs).completions == [("p1", 5), ("p2", 6)]
    assert run_sjf(procs).completions == [("p2", 1), ("p1", 6)]


def test_sjf_picks_shortest_after_idle_gap():
    procs = make_set((0, 1), (10, 5), (10, 2))
    assert run_fifo(procs).completions == [("p1", 1), ("p2", 5), ("p3", 7)]
    assert run_sjf(procs).completions == [("p1", 1), ("p3", 2), ("p2", 7)]
    assert run_srt(procs).completions == [("p1", 1), ("p3", 2), ("p2", 7)]


def test_srt_does_not_preempt_on_equal_remaining_time():
    srt = run_srt(make_set((0, 4), (1, 6), (2, 2)))
    assert srt.completions == [("p1", 4), ("p3", 4), ("p2", 11)]
    assert srt.timeline[0] == ("p1", 0, 4)


def test_srt_resumes_suspended_process_with_preserved_remaining():
    srt = run_srt(make_set((0, 10), (2, 3), (3, 1)))
    assert srt.completions == [("p3", 1), ("p2", 4), ("p1", 14)]
    assert srt.timeline == [
        ("p1", 0, 2), ("p2", 2, 3), ("p3", 3, 4), ("p2", 4, 6), ("p1", 6, 14),
    ]
    assert srt.processes.get("p1").finish_time == 14


def test_zero_service_process_finishes_at_arrival():
    procs = make_set((0, 0), (0, 3))
    for result in run_all(procs).values():
        assert result.completions == [("p1", 0), ("p2", 3)]


def test_srt_zero_service_arrival_preempts_running_process():
    srt = run_srt(make_set((0, 4), (2, 0)))
    assert srt.completions == [("p2", 0), ("p1", 4)]
    assert srt.processes.get("p2").finish_time == 2


@pytest.mark.parametrize("engine", [run_fifo, run_sjf, run_srt])
def test_engine_leaves_input_untouched(engine):
    procs = make_set((0, 5), (1, 1), (3, 2))
    result = engine(procs)
    for p in procs:
        assert p.remaining == p.service
        assert p.active
        assert p.state == NEW
        assert p.turnaround is None
    for p in result.processes:
        assert p.remaining == 0
        assert not p.active
        assert p.state == TERMINATED
        assert p.is_terminated


def test_trace_is_written_in_time_order_for_fifo():
    out = io.StringIO()
    run_fifo(make_set((0, 5), (1, 1)), out)
    assert out.getvalue().splitlines() == [
        "Time   0 : p1 arrived",
        "Time   0 : p1 selected (remaining   5)",
        "Time   1 : p2 arrived",
        "Time   5 : p1 finished (turnaround 5)",
        "Time   5 : p2 selected (remaining   1)",
        "Time   6 : p2 finished (turnaround 5)",
    ]


def test_trace_reports_preemption_and_idle_time():
    out = io.StringIO()
    run_srt(make_set((0, 5), (1, 1), (20, 1)), out)
    trace = out.getvalue()
    assert "Time   1 : p1 preempted (remaining   4)" in trace
    assert "Time   6 : Idle until 20" in trace


def test_result_serializes_completions_and_att():
    data = run_srt(make_set((0, 5), (1, 1))).to_dict()
    assert data["policy"] == "SRT"
    assert data["name"] == "Shortest Remaining Time"
    assert data["completions"][0] == {"pid": "p2", "turnaround": 1}
    assert data["att"] == 3.5


@pytest.mark.parametrize("seed", range(10))
def test_generated_population_invariants(seed):
    procs = generate_processes(20, 100, 10, 4, seed=seed)
    results = run_all(procs)

    for result in results.values():
        assert len(result.completions) == len(procs)
        assert result.att == pytest.approx(sum(result.turnarounds.values()) / len(procs))
        for p in result.processes:
            assert p.turnaround == p.finish_time - p.arrival
            assert p.finish_time >= p.arrival + p.service

    assert results["SRT"].att <= results["FIFO"].att + 1e-9
    assert results["SRT"].att <= results["SJF"].att + 1e-9


@pytest.mark.parametrize("engine", [run_fifo, run_sjf, run_srt])
def test_runs_on_equal_copies_are_identical(engine):
    procs = generate_processes(15, 50, 8, 3, seed=3)
    first = engine(procs.copy())
    second = engine(procs.copy())
    assert first.completions == second.completions
    assert first.timeline == second.timeline
    assert first.att == second.att


def test_run_all_reports_policies_in_order():
    results = run_all(make_set((0, 1)))
    assert list(results) == ["FIFO", "SJF", "SRT"]
    assert [r.policy for r in results.values()] == ["FIFO", "SJF", "SRT"]
