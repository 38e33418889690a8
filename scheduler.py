#!/usr/bin/env python3
# scheduler.py
#
# Discrete-time comparison of FIFO, SJF and SRT scheduling over one randomly
# generated process population.

import math
import os
import sys
import heapq
from collections import deque

import numpy as np

# --------------------------------------------------------------------------
# --- Data Structures and Utilities
# --------------------------------------------------------------------------

NEW = "NEW"
READY = "READY"
RUNNING = "RUNNING"
SUSPENDED = "SUSPENDED"
TERMINATED = "TERMINATED"


class ParameterError(ValueError):
    """Raised when simulation parameters cannot produce a valid population."""


class ConfigError(ValueError):
    """Raised for missing or malformed directives in an input file."""


class Process:
    """
    Represents a single process in the simulation.

    Attributes:
        pid (str): Unique identifier, assigned in generation order.
        arrival (int): Time at which the process becomes eligible to run.
        service (int): Total CPU time the process requires.

        remaining (int): CPU time still owed; starts equal to service.
        active (bool): True until the process terminates.
        state (str): NEW, READY, RUNNING, SUSPENDED or TERMINATED.

        finish_time (int): Time of termination, None until then.
        turnaround (int): finish_time - arrival, None until termination.
    """
    def __init__(self, pid, arrival, service):
        self.pid = str(pid)
        self.arrival = int(arrival)
        self.service = int(service)
        if self.arrival < 0:
            raise ValueError(f"Process {self.pid} cannot have a negative arrival time")
        if self.service < 0:
            raise ValueError(f"Process {self.pid} cannot have a negative service time")

        # Simulation state variables
        self.remaining = self.service
        self.active = True
        self.state = NEW

        # Final performance metrics
        self.finish_time = None
        self.turnaround = None

    @property
    def is_terminated(self):
        return self.state == TERMINATED

    def copy(self):
        clone = Process(self.pid, self.arrival, self.service)
        clone.remaining = self.remaining
        clone.active = self.active
        clone.state = self.state
        clone.finish_time = self.finish_time
        clone.turnaround = self.turnaround
        return clone

    def to_dict(self):
        return {
            'pid': self.pid,
            'arrival': self.arrival,
            'service': self.service,
            'remaining': self.remaining,
            'active': self.active,
            'state': self.state,
            'finish_time': self.finish_time,
            'turnaround': self.turnaround,
        }

    def __repr__(self):
        """Developer-friendly representation for debugging."""
        return (f"Process(pid='{self.pid}', arrival={self.arrival}, "
                f"service={self.service}, rem={self.remaining})")


class ProcessSet:
    """
    Arena of process records keyed by pid.

    Iteration yields processes in arrival order; processes arriving at the
    same time keep the order in which they were given.
    """
    def __init__(self, processes):
        ordered = sorted(processes, key=lambda p: p.arrival)
        if not ordered:
            raise ValueError("A process set needs at least one process")

        self._by_pid = {}
        for p in ordered:
            if p.pid in self._by_pid:
                raise ValueError(f"Duplicate process id '{p.pid}'")
            self._by_pid[p.pid] = p
        self._order = [p.pid for p in ordered]
        self._rank = {pid: i for i, pid in enumerate(self._order)}

    def get(self, pid):
        return self._by_pid[pid]

    def rank(self, pid):
        """Position of the process in arrival order."""
        return self._rank[pid]

    def copy(self):
        return ProcessSet([p.copy() for p in self])

    def __iter__(self):
        return (self._by_pid[pid] for pid in self._order)

    def __len__(self):
        return len(self._order)

    def __repr__(self):
        return f"ProcessSet({list(self)!r})"


class ScheduleResult:
    """
    Outcome of one engine run.

    completions lists (pid, turnaround) in termination order and timeline
    lists the CPU bursts as (pid, start, end).
    """
    def __init__(self, policy, processes):
        self.policy = policy
        self.processes = processes
        self.completions = []
        self.timeline = []

    def record(self, process):
        self.completions.append((process.pid, process.turnaround))

    def add_burst(self, pid, start, end):
        if end > start:
            self.timeline.append((pid, start, end))

    @property
    def turnarounds(self):
        return dict(self.completions)

    @property
    def att(self):
        return sum(tt for _, tt in self.completions) / len(self.completions)

    def to_dict(self):
        return {
            'policy': self.policy,
            'name': get_policy_display_name(self.policy),
            'completions': [{'pid': pid, 'turnaround': tt} for pid, tt in self.completions],
            'timeline': [{'pid': pid, 'start': s, 'end': e} for pid, s, e in self.timeline],
            'att': self.att,
        }

    def __repr__(self):
        return f"ScheduleResult(policy='{self.policy}', att={self.att:.2f})"


class ReadyQueue:
    """
    Arrived, non-terminated processes waiting for the CPU, ordered by
    remaining time. Ties go to the process that comes first in arrival order.

    A queued process's remaining time cannot change while it waits, so the
    heap key taken at push time stays valid.
    """
    def __init__(self, process_set):
        self._process_set = process_set
        self._heap = []

    def push(self, process):
        key = (process.remaining, self._process_set.rank(process.pid))
        heapq.heappush(self._heap, (key, process.pid))

    def peek_shortest(self):
        return self._process_set.get(self._heap[0][1])

    def pop_shortest(self):
        _, pid = heapq.heappop(self._heap)
        return self._process_set.get(pid)

    def __len__(self):
        return len(self._heap)


def get_policy_display_name(policy):
    """Translates the internal policy code to a user-friendly string."""
    return {
        'FIFO': "First-In First-Out",
        'SJF': "Shortest Job First",
        'SRT': "Shortest Remaining Time"
    }.get(policy, "Unknown Policy")

# --------------------------------------------------------------------------
# --- Process Generation
# --------------------------------------------------------------------------

def validate_params(n, k, d, v):
    """Rejects parameters that would produce an empty or degenerate population."""
    for name, value in (('n', n), ('k', k)):
        if isinstance(value, bool) or not float(value).is_integer():
            raise ParameterError(f"{name} must be an integer, got {value!r}")
    if n <= 0:
        raise ParameterError(f"n must be positive, got {n}")
    if k <= 0:
        raise ParameterError(f"k must be positive, got {k}")
    if not math.isfinite(d):
        raise ParameterError(f"d must be a finite number, got {d}")
    if not math.isfinite(v) or v < 0:
        raise ParameterError(f"v must be a non-negative number, got {v}")


def sample_service_time(rng, d, v):
    """round(Normal(d, v)) with ties to even, floored at 0."""
    return max(0, int(round(float(rng.normal(d, v)))))


def generate_processes(n, k, d, v, rng=None, seed=None):
    """
    Creates n processes named p1..pn.

    Each process draws its arrival time uniformly from [0, k) and then its
    service time from Normal(d, v). Pass either a numpy Generator or a seed
    to make the population reproducible.
    """
    validate_params(n, k, d, v)
    if rng is None:
        rng = np.random.default_rng(seed)

    processes = []
    for i in range(int(n)):
        arrival = int(rng.integers(0, int(k)))
        service = sample_service_time(rng, d, v)
        processes.append(Process(f"p{i + 1}", arrival, service))
    return ProcessSet(processes)

# --------------------------------------------------------------------------
# --- Simulation Helper Functions
# --------------------------------------------------------------------------

def log_event(out_file, time, message):
    if out_file is not None:
        out_file.write(f"Time {time:3} : {message}\n")


def admit_arrivals(time, pending, enqueue, out_file=None):
    """Moves every pending process with arrival <= time into the ready queue."""
    while pending and pending[0].arrival <= time:
        process = pending.popleft()
        process.state = READY
        enqueue(process)
        log_event(out_file, process.arrival, f"{process.pid} arrived")


def idle_until(process, time, out_file=None):
    """Advances the clock over an idle gap up to the process's arrival."""
    if process.arrival > time:
        log_event(out_file, time, f"Idle until {process.arrival}")
        return process.arrival
    return time


def select_process(time, process, out_file=None):
    process.state = RUNNING
    log_event(out_file, time, f"{process.pid} selected (remaining {process.remaining:3})")


def terminate(process, time, result, out_file=None):
    """Fixes the process's turnaround time and records the completion."""
    process.remaining = 0
    process.active = False
    process.state = TERMINATED
    process.finish_time = time
    process.turnaround = time - process.arrival
    result.record(process)
    log_event(out_file, time, f"{process.pid} finished (turnaround {process.turnaround})")


def run_to_completion(process, time, result, out_file=None, admit=None):
    """
    Runs a selected process without interruption and returns the new time.

    admit, when given, is called with the finish time so that processes
    arriving during the burst are queued before the completion is logged.
    """
    select_process(time, process, out_file)
    finish = time + process.remaining
    if admit is not None:
        admit(finish)
    result.add_burst(process.pid, time, finish)
    terminate(process, finish, result, out_file)
    return finish

# --------------------------------------------------------------------------
# --- Simulation Core Logic
# --------------------------------------------------------------------------

def run_fifo(process_set, out_file=None):
    """Runs every process to completion strictly in arrival order."""
    procs = process_set.copy()
    result = ScheduleResult('FIFO', procs)
    pending = deque(procs)
    ready_queue = deque()

    def admit(t):
        admit_arrivals(t, pending, ready_queue.append, out_file)

    time = pending[0].arrival
    while pending or ready_queue:
        admit(time)
        if not ready_queue:
            time = idle_until(pending[0], time, out_file)
            continue
        time = run_to_completion(ready_queue.popleft(), time, result, out_file, admit)

    return result


def run_sjf(process_set, out_file=None):
    """
    Non-preemptive shortest job first.

    Whenever the CPU frees up, the arrived process with the least remaining
    time is selected and then runs to completion. When nothing has arrived
    yet, the clock jumps to the next arrival. The first dispatch and every
    dispatch after an idle gap also choose the shortest among the processes
    arriving at that instant, not simply the earliest in arrival order.
    """
    procs = process_set.copy()
    result = ScheduleResult('SJF', procs)
    pending = deque(procs)
    ready_queue = ReadyQueue(procs)

    def admit(t):
        admit_arrivals(t, pending, ready_queue.push, out_file)

    time = pending[0].arrival
    while pending or ready_queue:
        admit(time)
        if not ready_queue:
            time = idle_until(pending[0], time, out_file)
            continue
        time = run_to_completion(ready_queue.pop_shortest(), time, result, out_file, admit)

    return result


def run_srt(process_set, out_file=None):
    """
    Preemptive shortest remaining time.

    The clock advances one unit at a time. After each unit, the running
    process is compared against the shortest process in the ready queue and
    is suspended if that one has strictly less remaining time. A suspended
    process resumes later with the remaining time it was preempted with.
    """
    procs = process_set.copy()
    result = ScheduleResult('SRT', procs)
    pending = deque(procs)
    ready_queue = ReadyQueue(procs)

    time = pending[0].arrival
    running, burst_start = None, time
    while pending or ready_queue or running:
        admit_arrivals(time, pending, ready_queue.push, out_file)

        if running is None:
            if not ready_queue:
                time = idle_until(pending[0], time, out_file)
                continue
            running = ready_queue.pop_shortest()
            select_process(time, running, out_file)
            burst_start = time

        # A zero-service process terminates the moment it is selected.
        if running.remaining > 0:
            running.remaining -= 1
            time += 1

        if running.remaining == 0:
            result.add_burst(running.pid, burst_start, time)
            terminate(running, time, result, out_file)
            running = None
            continue

        admit_arrivals(time, pending, ready_queue.push, out_file)
        if ready_queue and ready_queue.peek_shortest().remaining < running.remaining:
            result.add_burst(running.pid, burst_start, time)
            running.state = SUSPENDED
            ready_queue.push(running)
            log_event(out_file, time, f"{running.pid} preempted (remaining {running.remaining:3})")
            running = None

    return result


ENGINES = {
    'FIFO': run_fifo,
    'SJF': run_sjf,
    'SRT': run_srt
}


def run_all(process_set, out_file=None):
    """Runs every policy on its own copy of the process set."""
    return {policy: engine(process_set, out_file) for policy, engine in ENGINES.items()}

# --------------------------------------------------------------------------
# --- Input Parsing and Validation
# --------------------------------------------------------------------------

DIRECTIVES = {
    'processcount': 'n',
    'arrivalmax': 'k',
    'servicemean': 'd',
    'servicedev': 'v',
}


def parse_input_lines(lines):
    """
    Reads simulation directives and returns the config dict
    (n, k, d, v, seed, trace).
    """
    config = {'seed': None, 'trace': False}

    for line in lines:
        cleaned = line.strip().split('#', 1)[0].strip()
        if not cleaned:
            continue
        parts = cleaned.split()
        directive = parts[0].lower()
        if directive == 'end':
            break
        if directive not in DIRECTIVES and directive not in ('seed', 'trace'):
            raise ConfigError(f"Unknown directive '{parts[0]}'")
        try:
            if directive in ('processcount', 'arrivalmax', 'seed'):
                config[DIRECTIVES.get(directive, directive)] = int(parts[1])
            elif directive in ('servicemean', 'servicedev'):
                config[DIRECTIVES[directive]] = float(parts[1])
            elif parts[1].lower() in ('on', 'off'):
                config['trace'] = parts[1].lower() == 'on'
            else:
                raise ValueError(parts[1])
        except (IndexError, ValueError):
            raise ConfigError(f"Malformed configuration line: '{line.strip()}'")

    for directive, key in DIRECTIVES.items():
        if key not in config:
            raise ConfigError(f"Missing parameter {directive}.")

    validate_params(config['n'], config['k'], config['d'], config['v'])
    return config


def parse_input_file(filename):
    try:
        with open(filename, 'r') as f:
            lines = f.readlines()
    except FileNotFoundError:
        raise ConfigError(f"Input file '{filename}' not found.")
    return parse_input_lines(lines)

# --------------------------------------------------------------------------
# --- Reporting
# --------------------------------------------------------------------------

def run_simulation(config, process_set, out_file):
    """
    Writes the report for every policy and returns the results.
    """
    n, k, d = config['n'], config['k'], config['d']
    out_file.write(f"{n} processes\n")
    out_file.write(f"Arrivals in [0, {k}), service ~ Normal({d:g}, {config['v']:g})\n")
    if d < k / n:
        out_file.write(f"d {d:g} is smaller than k/n {k / n:g}: processes mostly run in isolation\n")
    else:
        out_file.write(f"d {d:g} is not smaller than k/n {k / n:g}: processes compete for the CPU\n")
    out_file.write("\n")

    for p in process_set:
        out_file.write(f"{p.pid:>6} arrival {p.arrival:5} service {p.service:5}\n")
    out_file.write("\n")

    results = {}
    for policy, engine in ENGINES.items():
        out_file.write(f"Using {get_policy_display_name(policy)}\n")
        result = engine(process_set, out_file if config.get('trace') else None)
        write_policy_metrics(out_file, result, d)
        results[policy] = result
    return results


def write_policy_metrics(out_file, result, d):
    for pid, tt in result.completions:
        out_file.write(f"{pid} turnaround {tt}\n")
    att = result.att
    ratio = f"{d / att:.4f}" if att else "n/a"
    out_file.write(f"ATT {att:.2f} d/ATT {ratio}\n\n")

# --------------------------------------------------------------------------
# --- Main Execution
# --------------------------------------------------------------------------

def main():
    """
    Entry point of the script. Reads the input file, generates the
    population and writes the comparison to <input base name>.out.
    """
    if len(sys.argv) != 2:
        print(f"Usage: {os.path.basename(sys.argv[0])} <input file>")
        sys.exit(1)

    input_filename = sys.argv[1]
    try:
        config = parse_input_file(input_filename)
    except ValueError as e:
        print(f"Error: {e}")
        sys.exit(1)

    process_set = generate_processes(config['n'], config['k'], config['d'], config['v'],
                                     seed=config['seed'])

    base_name = os.path.splitext(os.path.basename(input_filename))[0]
    output_filename = f"{base_name}.out"

    try:
        with open(output_filename, 'w') as out_file:
            run_simulation(config, process_set, out_file)
    except IOError as e:
        print(f"Error: Could not write to output file '{output_filename}': {e}")
        sys.exit(1)

if __name__ == "__main__":
    main()
