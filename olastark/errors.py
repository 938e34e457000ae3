"""Exception hierarchy for the prover, verifier and registry."""


class OlaStarkError(Exception):
    """Base class for every error raised by olastark."""


class ConfigurationError(OlaStarkError):
    """Registry, lookup or proof configuration is inconsistent. Not retried."""


class ExecutionError(OlaStarkError):
    """The reference executor rejected a program."""


class TraceError(OlaStarkError):
    """A trace is malformed or does not satisfy its table constraints."""


class CtlCheckError(TraceError):
    """A cross-table lookup multiset equality does not hold on the traces."""

    def __init__(self, ctl_name: str, side: str, missing=(), extra=()):
        self.ctl_name = ctl_name
        self.side = side
        self.missing = list(missing)
        self.extra = list(extra)
        parts = [f"cross-table lookup '{ctl_name}' mismatch on {side} side"]
        if self.missing:
            parts.append(f"tuples missing from looked side: {self.missing[:4]}")
        if self.extra:
            parts.append(f"tuples without a looking counterpart: {self.extra[:4]}")
        super().__init__("; ".join(parts))


# --- Verification failures ---


class VerificationError(OlaStarkError):
    """Any reason the verifier rejects an AllProof."""


class ConstraintViolationError(VerificationError):
    """Per-table constraint identity fails at the opening point."""


class CtlVerificationError(VerificationError):
    """Cross-table lookup running sums do not balance."""


class OpeningProofError(VerificationError):
    """Merkle or FRI opening proof is invalid."""


class PublicValuesMismatchError(VerificationError):
    """Public values in the proof differ from the ones expected by the caller."""


class DescriptorMismatchError(VerificationError):
    """The proof was built against a different set of cross-table lookups."""


class MalformedProofError(VerificationError):
    """Proof structure does not match the registry (wrong shapes, missing tables)."""
