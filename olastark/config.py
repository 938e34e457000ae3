"""Proof-system configuration shared by every table and lookup."""

from dataclasses import asdict, dataclass
from typing import List, Optional

from olastark.errors import ConfigurationError


@dataclass(frozen=True)
class StarkConfig:
    """Security and batching parameters.

    Attributes:
        security_bits: Targeted conjectured security.
        rate_bits: log2 of the LDE blowup factor.
        num_query_rounds: FRI query repetitions.
        proof_of_work_bits: Grinding difficulty before queries are sampled.
        num_challenges: Independent repetitions of every base-field challenge
            (lookup challenges and constraint-combination alphas).
        max_constraint_degree: Degree bound of every table constraint,
            selectors included.
        ctl_batch_size: Lookup terms folded into one helper column. None derives
            it from the degree bound.
    """
    security_bits: int = 100
    rate_bits: int = 2
    num_query_rounds: int = 40
    proof_of_work_bits: int = 16
    num_challenges: int = 2
    max_constraint_degree: int = 3
    ctl_batch_size: Optional[int] = None

    @classmethod
    def standard(cls) -> "StarkConfig":
        return cls()

    @classmethod
    def fast_testing(cls) -> "StarkConfig":
        """Small parameters, for tests only."""
        return cls(security_bits=20, rate_bits=2, num_query_rounds=4, proof_of_work_bits=2, num_challenges=1)

    @property
    def blowup(self) -> int:
        return 1 << self.rate_bits

    @property
    def quotient_chunks(self) -> int:
        """Number of size-n chunks a quotient polynomial splits into."""
        return self.max_constraint_degree - 1

    @property
    def batch_size(self) -> int:
        if self.ctl_batch_size is not None:
            return self.ctl_batch_size
        return self.max_constraint_degree - 1

    def validate(self) -> "StarkConfig":
        """Raise ConfigurationError when parameters cannot produce a sound proof."""
        if self.max_constraint_degree < 2:
            raise ConfigurationError("max_constraint_degree must be at least 2")
        if (1 << self.rate_bits) < self.max_constraint_degree:
            raise ConfigurationError(
                f"rate_bits={self.rate_bits} too small for constraint degree {self.max_constraint_degree}"
            )
        if self.num_query_rounds < 1 or self.num_challenges < 1:
            raise ConfigurationError("num_query_rounds and num_challenges must be positive")
        if self.proof_of_work_bits < 0 or self.proof_of_work_bits > 32:
            raise ConfigurationError("proof_of_work_bits must be in [0, 32]")
        if self.batch_size < 1 or self.batch_size > self.max_constraint_degree - 1:
            raise ConfigurationError(
                f"ctl_batch_size={self.batch_size} exceeds the degree bound "
                f"(max {self.max_constraint_degree - 1})"
            )
        return self

    def to_elements(self) -> List[int]:
        """Field encoding absorbed by the transcript."""
        return [
            self.security_bits,
            self.rate_bits,
            self.num_query_rounds,
            self.proof_of_work_bits,
            self.num_challenges,
            self.max_constraint_degree,
            self.batch_size,
        ]

    def to_dict(self) -> dict:
        return asdict(self)
