from spotfinder.events.channel import EventChannel
from spotfinder.storage.memory import InMemoryStore
from spotfinder.domain.models import GeoLocation, Spot


def test_channel_delivers_in_subscription_order_and_unsubscribes():
    channel = EventChannel()
    calls = []
    channel.subscribe("topic", lambda p: calls.append(("first", p)))
    unsubscribe = channel.subscribe("topic", lambda p: calls.append(("second", p)))

    assert channel.publish("topic", 1) == 2
    unsubscribe()
    unsubscribe()
    assert channel.publish("topic", 2) == 1
    assert channel.publish("unknown", 3) == 0

    assert calls == [("first", 1), ("second", 1), ("first", 2)]


def _spot(spot_id: str, name: str = "") -> Spot:
    return Spot(id=spot_id, name=name, location=GeoLocation(lat=0.0, lon=0.0), discovery_radius=10)


def test_store_create_is_idempotent_by_id():
    store = InMemoryStore([_spot("a", "original")])

    kept = store.create(_spot("a", "replacement"))

    assert kept.name == "original"
    assert store.get("a").name == "original"
    assert store.stats.as_dict() == {"created": 1, "duplicates": 1}


def test_store_list_keeps_insertion_order_and_filters():
    store = InMemoryStore()
    store.create_many([_spot("b"), _spot("a"), _spot("c")])

    assert [s.id for s in store.list()] == ["b", "a", "c"]
    assert [s.id for s in store.list(lambda s: s.id != "a")] == ["b", "c"]
    assert "a" in store
    assert store.get("zzz") is None
