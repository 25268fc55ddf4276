"""
PID Correction

Optional control output recorded alongside each sample. A negative
correction asks for cooling: -100 means run the compressor for the whole
duty cycle, 0 means leave it off.
"""

from dataclasses import dataclass, field
from typing import Optional

from .models import Configuration, Status


@dataclass
class PIDController:
    """PID controller whose gains follow the persisted configuration."""

    output_limits: tuple[float, float] = (-100.0, 100.0)

    _integral: float = field(default=0.0, init=False)
    _last_error: Optional[float] = field(default=None, init=False)
    _gains: Optional[tuple[float, float, float]] = field(default=None, init=False)

    def reset(self):
        self._integral = 0.0
        self._last_error = None

    def update(self, measured: float, config: Configuration, dt: float) -> float:
        """Compute the correction for one tick.

        Args:
            measured: Current inside temperature (°C)
            config: Configuration providing target and gains
            dt: Seconds since the previous update

        Returns:
            Correction clamped to output_limits
        """
        gains = (config.p, config.i, config.d)
        if gains != self._gains:
            # New gains from a control update; old integral no longer applies
            self.reset()
            self._gains = gains

        low, high = self.output_limits
        error = config.target_temp - measured

        derivative = 0.0
        if dt > 0:
            self._integral += error * dt
            if config.i:
                # Keep the integral term within the output range (anti-windup)
                bound_a, bound_b = low / config.i, high / config.i
                self._integral = max(min(bound_a, bound_b), min(max(bound_a, bound_b), self._integral))
            if self._last_error is not None:
                derivative = (error - self._last_error) / dt
        self._last_error = error

        output = config.p * error + config.i * self._integral + config.d * derivative
        return max(low, min(high, output))


def derive_status(
    reported: Optional[Status],
    inside_temp: float,
    target_temp: float,
    correction: Optional[float] = None,
) -> Status:
    """Status to record: the reported one, otherwise inferred."""
    if reported is not None:
        return reported
    if correction is not None:
        return Status.COOLING if correction < 0 else Status.IDLE
    return Status.COOLING if inside_temp > target_temp else Status.IDLE
