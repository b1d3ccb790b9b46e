import pytest

from tmpcas import Handle


def test_equality_by_digest():
    assert Handle("abc123") == Handle("abc123")
    assert Handle("abc123") != Handle("abc124")
    assert len({Handle("abc123"), Handle("abc123")}) == 1


def test_str_is_digest():
    assert str(Handle("0f")) == "0f"


@pytest.mark.parametrize("digest", ["", "ABC", "../etc/passwd", "0f ", "g0"])
def test_invalid_digest(digest: str):
    with pytest.raises(ValueError):
        Handle(digest)


def test_immutable():
    handle = Handle("0f")
    with pytest.raises(AttributeError):
        handle.digest = "1f"  # type: ignore[misc]
