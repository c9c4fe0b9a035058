""" Test cases for facts and the world state """

import pytest

from rulebard import facts

def test_fact_type():
    assert facts.fact_type(True) == facts.FactType.BOOL
    assert facts.fact_type(3) == facts.FactType.INT
    assert facts.fact_type(3.0) == facts.FactType.FLOAT
    assert facts.fact_type("x") == facts.FactType.STR
    assert facts.fact_type(facts.tags("a", "b")) == facts.FactType.TAGS
    assert facts.fact_type(frozenset()) == facts.FactType.TAGS

    for bad in [None, b"bytes", frozenset((1, 2)), object(), {"a": 1}]:
        with pytest.raises(TypeError):
            facts.fact_type(bad)

def test_set_and_remove(world):
    world.set_fact("hp", 55)
    assert world["hp"] == 55

    world.set_fact("guard_state", ["idle"])
    assert world["guard_state"] == frozenset(("idle",))

    world.remove_fact("hp")
    assert "hp" not in world
    # removing a missing fact is fine
    world.remove_fact("hp")

    with pytest.raises(TypeError):
        world.set_fact("hp", None)
    with pytest.raises(TypeError):
        world.set_fact("", 1)
    with pytest.raises(TypeError):
        world.set_fact(7, 1) # type: ignore

def test_update_and_clear():
    w = facts.WorldState()
    w.update({"a": 1, "b": "two"})
    w.update([("c", 3.0)])
    assert dict(w) == {"a": 1, "b": "two", "c": 3.0}
    assert len(w) == 3
    w.clear()
    assert len(w) == 0

def test_snapshot_is_independent(world):
    snap = world.snapshot()
    assert dict(snap) == dict(world)

    world.set_fact("weather", "stormy")
    world.remove_fact("hp")
    assert snap["weather"] == "sunny"
    assert snap["hp"] == 80

    snap.set_fact("gold", 0.0)
    assert world["gold"] == 12.5
