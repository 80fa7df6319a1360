"""Data model for configuration intents and convergence outcomes."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union


@dataclass(frozen=True)
class DhcpAddressing:
    """Interface should obtain its address from DHCP."""

    @property
    def mode(self) -> str:
        return "dhcp"


@dataclass(frozen=True)
class StaticAddressing:
    """Interface should use a fixed address."""
    ip_address: str
    subnet_mask: str
    gateway: str

    @property
    def mode(self) -> str:
        return "static"


Addressing = Union[DhcpAddressing, StaticAddressing]


@dataclass(frozen=True)
class NetworkTarget:
    """One addressable network interface on the chassis (blade, CMC, switch)."""
    module_type: str
    slot: str
    desired: Addressing

    @property
    def name(self) -> str:
        """Module name as the console expects it, e.g. ``server-1``."""
        return f"{self.module_type}-{self.slot}"

    @property
    def is_static(self) -> bool:
        return isinstance(self.desired, StaticAddressing)


@dataclass
class UserAccountSpec:
    """Local console user account."""
    name: str
    password: str
    role: str
    enabled: bool = True
    index: int = 1

    def __post_init__(self):
        if self.index < 1:
            raise ValueError(f"User index must be >= 1, got {self.index}")


class TargetState(Enum):
    """Lifecycle states of a target during one convergence run."""
    PENDING = "pending"
    ERRORED = "errored"
    APPLIED = "applied"
    GAVE_UP = "gave_up"
    ADDRESS_CONVERGED = "address_converged"
    CONNECTIVITY_CONFIRMED = "connectivity_confirmed"
    TIMED_OUT = "timed_out"


# Allowed forward transitions. Terminal states have no entry.
TRANSITIONS: dict[TargetState, set[TargetState]] = {
    TargetState.PENDING: {TargetState.ERRORED, TargetState.APPLIED},
    TargetState.ERRORED: {TargetState.APPLIED, TargetState.GAVE_UP},
    TargetState.APPLIED: {TargetState.ADDRESS_CONVERGED, TargetState.TIMED_OUT},
    TargetState.ADDRESS_CONVERGED: {
        TargetState.CONNECTIVITY_CONFIRMED,
        TargetState.TIMED_OUT,
    },
}


@dataclass
class TargetOutcome:
    """Progress of a single target through a convergence run."""
    target: NetworkTarget
    state: TargetState = TargetState.PENDING
    attempts: int = 0
    polls: int = 0
    probes: int = 0
    retry_delays: list[float] = field(default_factory=list)
    address: Optional[str] = None
    error: Optional[str] = None

    def transition(self, new_state: TargetState) -> None:
        """Move to ``new_state``, rejecting anything but a forward step."""
        allowed = TRANSITIONS.get(self.state, set())
        if new_state not in allowed:
            raise ValueError(
                f"Invalid transition for {self.target.name}: "
                f"{self.state.value} -> {new_state.value}"
            )
        self.state = new_state

    @property
    def is_terminal(self) -> bool:
        return self.state not in TRANSITIONS

    def to_dict(self) -> dict:
        return {
            "target": self.target.name,
            "mode": self.target.desired.mode,
            "state": self.state.value,
            "attempts": self.attempts,
            "polls": self.polls,
            "probes": self.probes,
            "address": self.address,
            "error": self.error,
        }


@dataclass
class ConvergenceReport:
    """Outcomes of one convergence run, in target order."""
    outcomes: list[TargetOutcome] = field(default_factory=list)

    @property
    def confirmed(self) -> list[TargetOutcome]:
        return [o for o in self.outcomes if o.state == TargetState.CONNECTIVITY_CONFIRMED]

    @property
    def failed(self) -> list[TargetOutcome]:
        return [o for o in self.outcomes if o.state != TargetState.CONNECTIVITY_CONFIRMED]

    @property
    def all_confirmed(self) -> bool:
        return bool(self.outcomes) and not self.failed

    def outcome_for(self, name: str) -> TargetOutcome:
        for outcome in self.outcomes:
            if outcome.target.name == name:
                return outcome
        raise KeyError(f"Unknown target: {name}")

    def to_dict(self) -> dict:
        return {
            "summary": {
                "total_targets": len(self.outcomes),
                "confirmed": len(self.confirmed),
                "failed": len(self.failed),
            },
            "targets": [o.to_dict() for o in self.outcomes],
        }
