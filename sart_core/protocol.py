"""
Trial protocol configurations.

Two variants exist; a deployment runs exactly one of them:

  - ContinuousProtocol: one unbroken run of N trials with a narrow range of
    No-Go trials, never adjacent and never within the first/last k trials.
  - BlockProtocol: K blocks, each a permutation of the full digit set with
    the No-Go digit kept away from the block's edge positions.

Both validate satisfiability on construction, so generation never fails.
"""

from dataclasses import dataclass
from typing import Tuple, FrozenSet, List

from .errors import ProtocolError


@dataclass(frozen=True)
class ContinuousProtocol:
    """Continuous sequence, no visible blocks (Brainrot-SART Short v1)."""

    name: str = "continuous"
    total_trials: int = 60
    no_go_digit: int = 3
    go_digits: Tuple[int, ...] = (1, 2, 4, 5, 6, 7, 8, 9)
    no_go_count_min: int = 7
    no_go_count_max: int = 8
    edge_exclusion: int = 2
    max_random_attempts: int = 200
    stimulus_duration_ms: int = 500
    mask_duration_ms: int = 900

    def __post_init__(self):
        if self.total_trials <= 0:
            raise ProtocolError("total_trials must be positive")
        if not self.go_digits:
            raise ProtocolError("go_digits must not be empty")
        if self.no_go_digit in self.go_digits:
            raise ProtocolError(
                f"No-Go digit {self.no_go_digit} is also a Go digit"
            )
        if not 0 <= self.no_go_count_min <= self.no_go_count_max:
            raise ProtocolError(
                f"Invalid No-Go range [{self.no_go_count_min}, {self.no_go_count_max}]"
            )
        if self.edge_exclusion < 0 or self.max_random_attempts < 0:
            raise ProtocolError("edge_exclusion and max_random_attempts must be >= 0")

        # Non-adjacent placement fits at most ceil(n / 2) targets in n slots
        n_allowed = len(self.allowed_positions)
        capacity = (n_allowed + 1) // 2
        if capacity < self.no_go_count_max:
            raise ProtocolError(
                f"{self.no_go_count_max} non-adjacent No-Go trials do not fit "
                f"into {n_allowed} allowed positions"
            )

    @property
    def forbidden_positions(self) -> FrozenSet[int]:
        k = self.edge_exclusion
        head = range(min(k, self.total_trials))
        tail = range(max(self.total_trials - k, 0), self.total_trials)
        return frozenset(head) | frozenset(tail)

    @property
    def allowed_positions(self) -> List[int]:
        forbidden = self.forbidden_positions
        return [i for i in range(self.total_trials) if i not in forbidden]

    @property
    def stimulus_digits(self) -> Tuple[int, ...]:
        return tuple(sorted(self.go_digits + (self.no_go_digit,)))

    @property
    def trial_duration_ms(self) -> int:
        return self.stimulus_duration_ms + self.mask_duration_ms


@dataclass(frozen=True)
class BlockProtocol:
    """K blocks, each containing every digit exactly once."""

    name: str = "block"
    n_blocks: int = 10
    digits: Tuple[int, ...] = (1, 2, 3, 4, 5, 6, 7, 8, 9)
    no_go_digit: int = 3
    forbidden_block_positions: Tuple[int, ...] = (0, 8)
    max_random_attempts: int = 100
    stimulus_duration_ms: int = 500
    mask_duration_ms: int = 900

    def __post_init__(self):
        if self.n_blocks <= 0:
            raise ProtocolError("n_blocks must be positive")
        if len(set(self.digits)) != len(self.digits):
            raise ProtocolError("Block digits must be unique")
        if self.no_go_digit not in self.digits:
            raise ProtocolError(
                f"No-Go digit {self.no_go_digit} is not part of the block digit set"
            )
        if self.max_random_attempts < 0:
            raise ProtocolError("max_random_attempts must be >= 0")
        # Keeping the first and last slot free is what keeps No-Go trials of
        # neighbouring blocks apart.
        last = self.block_size - 1
        if 0 not in self.forbidden_block_positions or last not in self.forbidden_block_positions:
            raise ProtocolError(
                f"Block positions 0 and {last} must be forbidden for No-Go trials"
            )
        if not self.allowed_block_positions:
            raise ProtocolError("No block position is left for the No-Go trial")

    @property
    def block_size(self) -> int:
        return len(self.digits)

    @property
    def total_trials(self) -> int:
        return self.n_blocks * self.block_size

    @property
    def go_digits(self) -> Tuple[int, ...]:
        return tuple(d for d in self.digits if d != self.no_go_digit)

    @property
    def allowed_block_positions(self) -> List[int]:
        return [
            p for p in range(self.block_size)
            if p not in self.forbidden_block_positions
        ]

    @property
    def no_go_count_min(self) -> int:
        return self.n_blocks

    @property
    def no_go_count_max(self) -> int:
        return self.n_blocks

    @property
    def forbidden_positions(self) -> FrozenSet[int]:
        return frozenset(
            b * self.block_size + p
            for b in range(self.n_blocks)
            for p in self.forbidden_block_positions
            if 0 <= p < self.block_size
        )

    @property
    def stimulus_digits(self) -> Tuple[int, ...]:
        return tuple(sorted(self.digits))

    @property
    def trial_duration_ms(self) -> int:
        return self.stimulus_duration_ms + self.mask_duration_ms


DEFAULT_PROTOCOL = ContinuousProtocol()

PROTOCOLS = {
    "continuous": ContinuousProtocol,
    "block": BlockProtocol,
}


def get_protocol(name: str):
    """Build the default configuration of a protocol variant by name."""
    try:
        return PROTOCOLS[name]()
    except KeyError:
        raise ValueError(
            f"Unknown protocol variant {name!r}; expected one of {sorted(PROTOCOLS)}"
        ) from None
