import pytest

from core.chiller.controller import PIDController, derive_status
from core.chiller.models import Configuration, Status


def test_proportional_correction_is_negative_when_too_warm():
    pid = PIDController()

    assert pid.update(6.0, Configuration(4.0, 8.0, 0.0, 0.0), dt=1.0) == pytest.approx(-16.0)


def test_correction_is_clamped():
    pid = PIDController()

    assert pid.update(30.0, Configuration(4.0, 8.0, 0.0, 0.0), dt=1.0) == -100.0
    assert pid.update(-30.0, Configuration(4.0, 8.0, 0.0, 0.0), dt=1.0) == 100.0


def test_integral_accumulates_and_resets_on_new_gains():
    pid = PIDController()
    config = Configuration(4.0, 0.0, 1.0, 0.0)

    pid.update(5.0, config, dt=1.0)
    assert pid.update(5.0, config, dt=1.0) == pytest.approx(-2.0)

    retuned = Configuration(4.0, 0.0, 2.0, 0.0)
    assert pid.update(5.0, retuned, dt=1.0) == pytest.approx(-2.0)


def test_integral_windup_is_bounded():
    pid = PIDController()
    config = Configuration(4.0, 0.0, 1.0, 0.0)

    for _ in range(500):
        pid.update(10.0, config, dt=1.0)

    # Recovers as soon as the error changes sign instead of unwinding 3000 units
    assert pid.update(-200.0, config, dt=1.0) > -100.0


def test_derivative_uses_error_change():
    pid = PIDController()
    config = Configuration(4.0, 0.0, 0.0, 1.0)

    assert pid.update(4.0, config, dt=1.0) == 0.0
    assert pid.update(5.0, config, dt=0.5) == pytest.approx(-2.0)


@pytest.mark.parametrize(
    "reported, inside, correction, expected",
    [
        (Status.IDLE, 9.0, None, Status.IDLE),
        (None, 9.0, 1.0, Status.IDLE),
        (None, 3.0, -1.0, Status.COOLING),
        (None, 4.5, None, Status.COOLING),
        (None, 4.0, None, Status.IDLE),
    ],
)
def test_derive_status(reported, inside, correction, expected):
    assert derive_status(reported, inside, 4.0, correction) == expected
