import pytest

from zenith.lib import ansi
from zenith.lib.ansi import DEFAULT, PLAIN, Theme, bold, dim, strip


@pytest.fixture
def colored():
    ansi.use(DEFAULT)
    yield
    ansi.use(PLAIN)


def test_theme_colors():
    t = Theme()
    assert t.red == "\033[38;5;203m"
    assert t.green == "\033[38;5;114m"
    assert t.muted == "\033[90m"


def test_plain_theme_is_empty():
    assert all(getattr(PLAIN, name) == "" for name in Theme.__dataclass_fields__)


def test_bold_and_dim(colored):
    assert bold("hi") == "\033[1mhi\033[0m"
    assert dim("hi") == "\033[2mhi\033[0m"


def test_color_wrappers(colored):
    assert ansi.green("ok") == "\033[38;5;114mok\033[0m"
    assert strip(ansi.orange("x")) == "x"


def test_unknown_color_raises():
    with pytest.raises(AttributeError):
        ansi.purple("x")  # noqa: B018


def test_strip_removes_codes():
    assert strip("\033[1mhello\033[0m world") == "hello world"
