import pytest

from optourney.errs import CustomError


def test_message_is_that_of_wrapped_error():
    error = CustomError(ValueError("boom"), 400)
    assert str(error) == "boom"


def test_keeps_wrapped_error_and_status():
    inner = KeyError("missing")
    error = CustomError(inner, 404)
    assert error.err is inner
    assert error.status_code == 404


def test_can_be_raised_and_caught():
    error = CustomError(RuntimeError("nope"), 500)
    assert error.status_code == 500
    assert str(error) == "nope"
    with pytest.raises(CustomError) as info:
        raise error
    assert info.value is error