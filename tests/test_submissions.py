import pytest

from swipe.submissions import SubmissionQueue


@pytest.fixture
def queue(store):
    return SubmissionQueue(store, max_length=50)


@pytest.mark.parametrize("text", ["", "   ", "\n\t ", None])
def test_blank_text_is_ignored(queue, store, text):
    assert queue.submit(text) is False
    assert store.list_pending() == []


def test_text_is_trimmed(queue):
    assert queue.submit("  Sing in public  \n") is True
    assert [p.text for p in queue.pending()] == ["Sing in public"]


def test_submissions_never_enter_the_deck(queue, store):
    queue.submit("Eat a lemon")
    assert store.list_active_challenges() == []


def test_too_long(queue, store):
    with pytest.raises(ValueError):
        queue.submit("x" * 51)
    assert store.list_pending() == []
