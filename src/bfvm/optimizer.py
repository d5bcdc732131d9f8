#
# Peephole optimizer for the accumulator/pointer instruction set.
#
# Each pass is one left-to-right sweep over a dense instruction list with a
# parallel liveness array. Rewrites only flip liveness or replace the head of
# a run in place, so indices stay stable for the whole pass. The pass ends by
# rebuilding a compacted list from the survivors.
#
# Rewrites (in order, within a pass):
#   1. Store/Load elimination   st; ld -> st      ld; st -> ld
#   2. Dead load elision        ld ... ld  with no accumulator reader between
#   3. Run coalescing           inc a; inc a; inc a -> add a, 3
#
# "Adjacent" always means the next still-live instruction. Labels are never
# removed here, so nothing is merged across a jump target.
#
# NOTE: exactly `passes` sweeps are made; this is not a fixpoint iteration.
#
from __future__ import annotations

import logging
from typing import List, Sequence

from .ir import (
    JUMPS,
    STEP_TO_COUNTED,
    Instruction,
    Opcode,
    reads_accumulator,
    step_count,
    step_of,
)

logger = logging.getLogger(__name__)

DEFAULT_PASSES = 2


def _next_live(live: List[bool], i: int) -> int:
    j = i + 1
    while j < len(live) and not live[j]:
        j += 1
    return j


# ---------------- 1. Store/Load elimination ----------------
def eliminate_store_load(insts: Sequence[Instruction], live: List[bool]) -> int:
    """
    st; ld  -> the load is dead: the accumulator already holds the stored value.
    ld; st  -> the store is dead: the cell already holds the loaded value.
    Returns the number of instructions killed.
    """
    killed = 0
    n = len(insts)
    i = 0
    while i < n:
        if not live[i]:
            i += 1
            continue
        j = _next_live(live, i)
        if j >= n:
            break
        cur, nxt = insts[i].op, insts[j].op
        if (cur is Opcode.STORE and nxt is Opcode.LOAD) or (cur is Opcode.LOAD and nxt is Opcode.STORE):
            live[j] = False
            killed += 1
            continue  # re-check i against its new neighbour
        i = j
    return killed


# ---------------- 2. Dead load elision ----------------
def _load_is_dead(insts: Sequence[Instruction], live: List[bool], i: int) -> bool:
    for j in range(i + 1, len(insts)):
        if not live[j]:
            continue
        inst = insts[j]
        if inst.op is Opcode.LOAD:
            return True
        if inst.op in JUMPS or reads_accumulator(inst):
            return False
    # Ran off the end: keep the load.
    return False


def elide_dead_loads(insts: Sequence[Instruction], live: List[bool]) -> int:
    killed = 0
    for i, inst in enumerate(insts):
        if live[i] and inst.op is Opcode.LOAD and _load_is_dead(insts, live, i):
            live[i] = False
            killed += 1
    return killed


# ---------------- 3. Run coalescing ----------------
def coalesce_runs(insts: List[Instruction], live: List[bool]) -> int:
    """
    Fold maximal runs of same-direction steps on one register into the run
    head (inc -> add, dec -> sub). The head is replaced in place and the
    other members are killed. Returns the number of instructions killed.
    """
    killed = 0
    n = len(insts)
    i = 0
    while i < n:
        head = insts[i]
        direction = step_of(head)
        if not live[i] or direction is None:
            i += 1
            continue

        members = [i]
        total = step_count(head)
        j = _next_live(live, i)
        while j < n and step_of(insts[j]) is direction and insts[j].arg is head.arg:
            total += step_count(insts[j])
            members.append(j)
            j = _next_live(live, j)

        if len(members) > 1:
            insts[i] = Instruction(STEP_TO_COUNTED[direction], head.arg, total)
            for k in members[1:]:
                live[k] = False
            killed += len(members) - 1
        i = j
    return killed


# ---------------- Driver ----------------
def optimize_pass(insts: Sequence[Instruction]) -> List[Instruction]:
    work = list(insts)
    live = [inst.op is not Opcode.NOP for inst in work]

    eliminate_store_load(work, live)
    elide_dead_loads(work, live)
    coalesce_runs(work, live)

    return [inst for inst, alive in zip(work, live) if alive]


def optimize(insts: Sequence[Instruction], passes: int = DEFAULT_PASSES) -> List[Instruction]:
    out = list(insts)
    for n in range(passes):
        before = len(out)
        out = optimize_pass(out)
        logger.debug("peephole pass %d: %d -> %d instructions", n + 1, before, len(out))
    return out
