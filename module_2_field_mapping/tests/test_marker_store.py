import pytest
from pydantic import ValidationError

from module_2_field_mapping.core.marker_store import MarkerStore
from module_2_field_mapping.core.models import Marker


def test_sequential_appends_produce_distinct_titles_and_ids() -> None:
    store = MarkerStore()

    markers = [store.append(14.5 + idx * 0.001, 120.9) for idx in range(5)]

    assert [marker.title for marker in markers] == [f"Obstacle {n}" for n in range(1, 6)]
    assert len({marker.marker_id for marker in markers}) == 5
    assert store.version == 5


def test_snapshot_is_read_only_copy() -> None:
    store = MarkerStore()
    store.append(1.0, 2.0)

    snapshot = store.snapshot()
    store.append(3.0, 4.0)

    assert isinstance(snapshot, tuple)
    assert len(snapshot) == 1
    assert len(store.snapshot()) == 2


def test_replace_all_and_clear_notify_listeners() -> None:
    store = MarkerStore(label_prefix="Rock")
    seen = []
    unsubscribe = store.subscribe(lambda snapshot: seen.append([m.title for m in snapshot]))

    store.append(0.0, 0.0)
    store.replace_all([Marker(lat=1.0, lng=1.0, title="A"), Marker(lat=2.0, lng=2.0, title="B")])
    store.clear()
    unsubscribe()
    store.append(5.0, 5.0)

    assert seen == [["Rock 1"], ["A", "B"], []]


def test_replace_all_rekeys_duplicate_ids() -> None:
    store = MarkerStore()
    first = Marker(lat=1.0, lng=1.0, title="Obstacle 1", marker_id="dup")
    second = Marker(lat=2.0, lng=2.0, title="Obstacle 2", marker_id="dup")

    store.replace_all([first, second])

    keys = store.keys()
    assert keys[0] == "dup"
    assert keys[1] != "dup"
    assert store.snapshot()[1].title == "Obstacle 2"


def test_title_counter_follows_current_length_after_reload() -> None:
    store = MarkerStore()
    store.replace_all([Marker(lat=1.0, lng=1.0, title="Obstacle 1")])

    marker = store.append(2.0, 2.0)

    assert marker.title == "Obstacle 2"
    assert marker.marker_id != store.snapshot()[0].marker_id


@pytest.mark.parametrize("lat, lng", [(float("nan"), 1.0), (1.0, float("inf")), (-90.1, 0.0), (0.0, 180.1)])
def test_markers_reject_unstorable_coordinates(lat, lng) -> None:
    store = MarkerStore()

    with pytest.raises(ValidationError):
        store.append(lat, lng)
    assert len(store) == 0
