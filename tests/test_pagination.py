import pytest

from ripple.server.pagination import MAX_WINDOW, coerce_positive, page_window


@pytest.mark.parametrize(
    "page, per_page, expected",
    [
        (1, 2, (0, 2)),
        (2, 2, (2, 2)),
        (3, 5, (10, 5)),
        (1, 0, (0, 1)),
        (0, 2, (0, 2)),
        (-4, -1, (0, 1)),
        ("2", "3", (3, 3)),
    ],
)
def test_page_window(page, per_page, expected):
    assert page_window(page, per_page) == expected


def test_page_window_defaults():
    assert page_window(None, None) == (0, 2)
    assert page_window(None, None, default_per_page=10) == (0, 10)
    assert page_window("abc", "", default_per_page=5) == (0, 5)


def test_coerce_positive():
    assert coerce_positive("7", 1) == 7
    assert coerce_positive("x", 3) == 3
    assert coerce_positive(0, 3) == 1


def test_page_window_is_bounded():
    huge = "99999999999999999999"
    assert page_window(huge, 2) == (MAX_WINDOW, 2)
    assert page_window(1, huge) == (0, MAX_WINDOW)
    assert page_window(huge, huge) == (MAX_WINDOW, MAX_WINDOW)
    assert coerce_positive(10 ** 30, 1) == MAX_WINDOW
