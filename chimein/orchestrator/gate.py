"""Cooldown and probability gate shared by every mode.

A mode may act only when its cooldown has elapsed and a weighted coin flip
succeeds. The gate itself never stamps the cooldown on a plain check; stamping
goes through a :class:`Reservation` so the commit policy decides whether the
timestamp is taken before the guarded action (eager) or after it (lazy).
"""

import random
import time
from dataclasses import dataclass
from typing import Callable, Optional

from chimein.config.schema import CommitPolicy

Clock = Callable[[], float]


@dataclass
class CooldownState:
    """Per-mode cooldown bookkeeping. Zero means "never triggered"."""
    last_triggered_at: float = 0.0

    def seconds_since(self, now: float) -> Optional[int]:
        """Whole seconds since the last trigger, or None if never triggered."""
        if not self.last_triggered_at:
            return None
        return int(now - self.last_triggered_at)


class Reservation:
    """A passed gate check waiting for the guarded action's outcome.

    Under LAZY the cooldown is measured from the moment the action completed
    (``commit`` reads the clock); under EAGER it is measured from the reserve
    call, whose stamp is already in place.
    """

    def __init__(
        self,
        state: CooldownState,
        stamp: float,
        previous: float,
        policy: CommitPolicy,
        clock: Optional[Clock] = None,
    ):
        self.state = state
        self.stamp = stamp
        self.previous = previous
        self.policy = policy
        self.clock = clock
        self._settled = False

    def commit(self) -> None:
        """Record the trigger after the action completed."""
        if self._settled:
            return
        self._settled = True
        if self.policy is CommitPolicy.LAZY and self.clock is not None:
            self.stamp = self.clock()
        self.state.last_triggered_at = self.stamp

    def rollback(self) -> None:
        """Undo an eager stamp after the action failed."""
        if self._settled:
            return
        self._settled = True
        # Only restore if nobody re-stamped the state in the meantime
        if self.policy is CommitPolicy.EAGER and self.state.last_triggered_at == self.stamp:
            self.state.last_triggered_at = self.previous

    def __enter__(self) -> "Reservation":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        # Commit on a clean exit unless the body already settled the ticket
        if exc_type is None:
            self.commit()
        else:
            self.rollback()
        return False


class CooldownGate:
    """Combined cooldown + probability eligibility check.

    Example:
        gate = CooldownGate(policy=CommitPolicy.EAGER)
        ticket = gate.reserve(state, cooldown_s=10, probability=0.15)
        if ticket:
            with ticket:
                await act()  # commits on success, rolls back on error
    """

    def __init__(
        self,
        clock: Clock = time.time,
        rng: Optional[random.Random] = None,
        policy: CommitPolicy = CommitPolicy.LAZY,
    ):
        self.clock = clock
        self.rng = rng or random.Random()
        self.policy = policy

    def remaining(self, state: CooldownState, cooldown_s: float) -> float:
        """Seconds left before the mode is off cooldown (0 when ready)."""
        elapsed = self.clock() - state.last_triggered_at
        return max(0.0, cooldown_s - elapsed)

    def try_acquire(self, state: CooldownState, cooldown_s: float, probability: float) -> bool:
        """Check eligibility without touching the state.

        Returns False while on cooldown; otherwise draws exactly one uniform
        sample and returns True iff it is below ``probability``.
        """
        if self.clock() - state.last_triggered_at < cooldown_s:
            return False
        return self.rng.random() < probability

    def reserve(
        self,
        state: CooldownState,
        cooldown_s: float,
        probability: float = 1.0,
    ) -> Optional[Reservation]:
        """Pass the gate and obtain a reservation, or None if not eligible."""
        if not self.try_acquire(state, cooldown_s, probability):
            return None
        now = self.clock()
        previous = state.last_triggered_at
        if self.policy is CommitPolicy.EAGER:
            state.last_triggered_at = now
        return Reservation(state, now, previous, self.policy, self.clock)
