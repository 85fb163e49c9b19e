"""
TrialSequenceGenerator — constrained-random stimulus sequences.

Generation is a bounded random search with a deterministic fallback:

  1. Draw a candidate placement of No-Go trials uniformly at random and
     accept it if it satisfies every constraint.
  2. After max_random_attempts rejections, build a placement constructively.
     The constructive path cannot fail for a protocol that passed its own
     satisfiability check, so generation always terminates.

Output order is trial index order; nothing is shuffled after assignment.
"""

import logging
import numpy as np
from typing import Optional, List, Sequence

from .protocol import ContinuousProtocol, BlockProtocol, DEFAULT_PROTOCOL
from .types import Trial

logger = logging.getLogger(__name__)


class TrialSequenceGenerator:
    """Produce one session's trial list for the configured protocol.

    Usage:
        gen = TrialSequenceGenerator(ContinuousProtocol(), seed=42)
        trials = gen.generate()
    """

    def __init__(
        self,
        protocol=DEFAULT_PROTOCOL,
        seed: Optional[int] = None,
        rng: Optional[np.random.Generator] = None,
    ):
        self.protocol = protocol
        self.rng = rng if rng is not None else np.random.default_rng(seed)

        # Tracking
        self.sequences_generated = 0
        self.fallbacks_used = 0

    def generate(self) -> List[Trial]:
        if isinstance(self.protocol, BlockProtocol):
            trials = self._generate_blocks()
        else:
            trials = self._generate_continuous()
        self.sequences_generated += 1
        return trials

    # ================================================================
    # CONTINUOUS PROTOCOL
    # ================================================================

    def _generate_continuous(self) -> List[Trial]:
        p: ContinuousProtocol = self.protocol
        count = int(self.rng.integers(p.no_go_count_min, p.no_go_count_max + 1))
        allowed = np.array(p.allowed_positions)

        positions = None
        for _ in range(p.max_random_attempts):
            candidate = np.sort(self.rng.choice(allowed, size=count, replace=False))
            if _no_adjacent(candidate):
                positions = [int(x) for x in candidate]
                break

        if positions is None:
            self.fallbacks_used += 1
            logger.debug(
                "Random No-Go placement exhausted %d attempts; using greedy placement",
                p.max_random_attempts,
            )
            positions = greedy_positions(p.allowed_positions, count)

        no_go = set(positions)
        go_draws = self.rng.choice(np.array(p.go_digits), size=p.total_trials)

        trials = []
        for i in range(p.total_trials):
            if i in no_go:
                trials.append(Trial(index=i, digit=p.no_go_digit, is_no_go=True))
            else:
                trials.append(Trial(index=i, digit=int(go_draws[i]), is_no_go=False))
        return trials

    # ================================================================
    # BLOCK PROTOCOL
    # ================================================================

    def _generate_blocks(self) -> List[Trial]:
        p: BlockProtocol = self.protocol
        trials = []
        for block in range(p.n_blocks):
            order = self._block_order()
            for pos, digit in enumerate(order):
                trials.append(Trial(
                    index=block * p.block_size + pos,
                    digit=digit,
                    is_no_go=digit == p.no_go_digit,
                    block_index=block,
                    position_in_block=pos,
                ))
        return trials

    def _block_order(self) -> List[int]:
        p: BlockProtocol = self.protocol
        digits = np.array(p.digits)
        order = None
        for _ in range(p.max_random_attempts):
            candidate = [int(d) for d in self.rng.permutation(digits)]
            if candidate.index(p.no_go_digit) not in p.forbidden_block_positions:
                order = candidate
                break

        if order is None:
            self.fallbacks_used += 1
            logger.debug(
                "Block shuffle exhausted %d attempts; moving No-Go digit to position %d",
                p.max_random_attempts, p.allowed_block_positions[0],
            )
            order = [int(d) for d in self.rng.permutation(digits)]
            src = order.index(p.no_go_digit)
            dst = p.allowed_block_positions[0]
            order[src], order[dst] = order[dst], order[src]
        return order


def _no_adjacent(sorted_positions) -> bool:
    return bool(np.all(np.diff(sorted_positions) > 1))


def greedy_positions(allowed: Sequence[int], count: int) -> List[int]:
    """Deterministic placement: walk forward, skipping one slot after each pick."""
    picked: List[int] = []
    for pos in allowed:
        if len(picked) == count:
            break
        if not picked or pos >= picked[-1] + 2:
            picked.append(pos)
    return picked


def validate_sequence(trials: Sequence[Trial], protocol=DEFAULT_PROTOCOL) -> List[str]:
    """Check a trial list against the protocol constraints.

    Returns a list of human-readable violations. Empty means valid.
    """
    errors = []
    if len(trials) != protocol.total_trials:
        errors.append(f"Expected {protocol.total_trials} trials, got {len(trials)}")

    no_go_positions = []
    for i, t in enumerate(trials):
        if t.index != i:
            errors.append(f"Trial at position {i} has index {t.index}")
        if t.is_no_go != (t.digit == protocol.no_go_digit):
            errors.append(f"Trial {i}: No-Go flag does not match digit {t.digit}")
        if t.is_no_go:
            no_go_positions.append(i)
        elif t.digit not in protocol.go_digits:
            errors.append(f"Trial {i}: digit {t.digit} is not a Go digit")

    n = len(no_go_positions)
    if not protocol.no_go_count_min <= n <= protocol.no_go_count_max:
        errors.append(
            f"Expected {protocol.no_go_count_min}-{protocol.no_go_count_max} "
            f"No-Go trials, got {n}"
        )
    for a, b in zip(no_go_positions, no_go_positions[1:]):
        if b - a == 1:
            errors.append(f"No-Go trials at adjacent positions {a} and {b}")
    for pos in no_go_positions:
        if pos in protocol.forbidden_positions:
            errors.append(f"No-Go trial at forbidden position {pos}")

    if isinstance(protocol, BlockProtocol) and len(trials) == protocol.total_trials:
        size = protocol.block_size
        for block in range(protocol.n_blocks):
            digits = [t.digit for t in trials[block * size:(block + 1) * size]]
            if sorted(digits) != sorted(protocol.digits):
                errors.append(f"Block {block}: digits are not a permutation of the digit set")
    return errors
