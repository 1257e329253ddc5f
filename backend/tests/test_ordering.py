import random

from ngotes.client.viewmodel import NoteView
from ngotes.ordering import sort_notes


def _notes():
    return [
        NoteView(id="a", title="a", pinned=False, last_modified=10),
        NoteView(id="b", title="b", pinned=True, last_modified=5),
        NoteView(id="c", title="c", pinned=False, last_modified=30),
        NoteView(id="d", title="d", pinned=True, last_modified=20),
        NoteView(id="e", title="e", pinned=False, last_modified=30),
    ]


def test_pinned_first_then_most_recent():
    assert [n.id for n in sort_notes(_notes())] == ["d", "b", "c", "e", "a"]


def test_reorder_is_idempotent():
    once = sort_notes(_notes())
    assert sort_notes(once) == once


def test_order_does_not_depend_on_input_order():
    expected = sort_notes(_notes())
    shuffled = _notes()
    for seed in range(5):
        random.Random(seed).shuffle(shuffled)
        assert sort_notes(shuffled) == expected


def test_store_and_client_agree(store):
    for i, (pinned, ts) in enumerate([(False, 3), (True, 1), (False, 3), (True, 9), (False, 7)]):
        store.insert_one("userA", f"t{i}", "", pinned, timestamp=ts)

    server = [n.id for n in store.find("userA")]
    local = [NoteView.from_wire(n.to_public()) for n in reversed(store.find("userA"))]
    assert [n.id for n in sort_notes(local)] == server
