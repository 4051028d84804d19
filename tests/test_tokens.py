import pytest

from app.webadmin.tokens import TokenError, TokenExpiredError, extract_token_from_header, sign_token, verify_token

SECRET = "unit-test-secret"


def _sign(payload, expires_in=3600, secret=SECRET):
    return sign_token(payload, secret=secret, algorithm="HS256", expires_in=expires_in)


def test_sign_and_verify():
    token = _sign({"userId": 7, "email": "a@b.co", "role": "user"})
    claims = verify_token(token, secret=SECRET, algorithm="HS256")
    assert claims["userId"] == 7
    assert claims["email"] == "a@b.co"
    assert claims["exp"] - claims["iat"] == 3600


def test_expired_token():
    token = _sign({"userId": 1}, expires_in=-10)
    with pytest.raises(TokenExpiredError):
        verify_token(token, secret=SECRET, algorithm="HS256")


def test_wrong_secret_and_garbage():
    token = _sign({"userId": 1}, secret="other")
    with pytest.raises(TokenError):
        verify_token(token, secret=SECRET, algorithm="HS256")
    with pytest.raises(TokenError):
        verify_token("not-a-jwt", secret=SECRET, algorithm="HS256")


def test_expired_is_a_token_error():
    assert issubclass(TokenExpiredError, TokenError)


@pytest.mark.parametrize(
    "header, expected",
    [
        ("Bearer abc.def", "abc.def"),
        ("bearer   abc.def  ", "abc.def"),
        ("abc.def", "abc.def"),
        ("Bearer ", None),
        ("", None),
        (None, None),
    ],
)
def test_extract_token_from_header(header, expected):
    assert extract_token_from_header(header) == expected
