import pytest

from ripple.server.db import Database
from ripple.server.errors import Conflict
from ripple.server.init import check_sqlite, migrate_database, reset_database


def user_doc(name, **extra):
    doc = {"name": name, "password": "hash"}
    doc.update(extra)
    return doc


async def test_create_and_find(db):
    created = await db.create(user_doc("alice", locations=["Paris", "Lyon"], gender="female"))
    assert "password" not in created
    assert "following" not in created
    assert created["locations"] == ["Paris", "Lyon"]

    found = await db.find_one(name="alice")
    assert found["id"] == created["id"]
    with_password = await db.find_one(reveal={"password"}, name="alice")
    assert with_password["password"] == "hash"
    assert await db.find_one(name="nobody") is None


async def test_duplicate_name_conflicts(db):
    await db.create(user_doc("alice"))
    with pytest.raises(Conflict):
        await db.create(user_doc("alice"))


async def test_find_by_id_unknown_or_malformed(db):
    assert await db.find_by_id("3f1c9a52-1111-4a4a-9b9b-000000000000") is None
    assert await db.find_by_id("not-a-uuid") is None
    assert await db.exists_by_id("not-a-uuid") is False


async def test_update_partial_and_edges(db):
    alice = await db.create(user_doc("alice", headline="hi"))
    bob = await db.create(user_doc("bob"))

    updated = await db.update_by_id(alice["id"], {"following": [bob["id"]], "business": "tech"})
    assert updated["headline"] == "hi"
    assert updated["business"] == "tech"
    assert "following" not in updated

    revealed = await db.find_by_id(alice["id"], reveal={"following"})
    assert revealed["following"] == [bob["id"]]

    expanded = await db.find_by_id(alice["id"], reveal={"following"}, expand={"following"})
    assert expanded["following"][0]["name"] == "bob"
    assert "password" not in expanded["following"][0]

    assert await db.update_by_id("3f1c9a52-1111-4a4a-9b9b-000000000000", {"headline": "x"}) is None


async def test_update_to_taken_name_conflicts(db):
    alice = await db.create(user_doc("alice"))
    await db.create(user_doc("bob"))
    with pytest.raises(Conflict):
        await db.update_by_id(alice["id"], {"name": "bob"})


async def test_find_is_case_insensitive_and_ordered(db):
    for name in ("Zoë", "zoe", "ZOË-2", "adam"):
        await db.create(user_doc(name))

    names = [u["name"] for u in await db.find(name_contains="zoë")]
    assert names == ["ZOË-2", "Zoë"]
    assert [u["name"] for u in await db.find(limit=2, skip=1)] == ["Zoë", "adam"]
    assert [u["name"] for u in await db.find(skip=3)] == ["zoe"]


async def test_find_by_edge_membership(db):
    a = await db.create(user_doc("a"))
    b = await db.create(user_doc("b"))
    c = await db.create(user_doc("c"))
    await db.update_by_id(b["id"], {"following": [a["id"], c["id"]]})
    await db.update_by_id(c["id"], {"following": [a["id"]]})

    assert [u["name"] for u in await db.find(edge="following", target_id=a["id"])] == ["b", "c"]
    assert [u["name"] for u in await db.find(edge="following", target_id=c["id"])] == ["b"]
    assert await db.find(edge="followingTopics", target_id=a["id"]) == []


async def test_delete(db):
    alice = await db.create(user_doc("alice"))
    assert await db.delete_by_id(alice["id"]) is True
    assert await db.delete_by_id(alice["id"]) is False
    assert await db.exists_by_id(alice["id"]) is False


async def test_topics_and_nested_expansion(db):
    acme = await db.create_topic({"name": "Acme"})
    mit = await db.create_topic({"name": "MIT", "introduction": "school"})
    with pytest.raises(Conflict):
        await db.create_topic({"name": "Acme"})

    alice = await db.create(user_doc(
        "alice",
        employments=[{"company": acme["id"], "job": None}],
        educations=[{"school": mit["id"], "major": "cs"}],
    ))
    expanded = await db.find_by_id(
        alice["id"], expand={"employments.company", "employments.job", "educations.school"})

    assert expanded["employments"] == [{"company": acme, "job": None}]
    assert expanded["educations"][0]["school"]["introduction"] == "school"
    assert expanded["educations"][0]["major"] == "cs"

    assert await db.topic_exists(acme["id"]) is True
    assert await db.find_topic(mit["id"]) == mit
    assert [t["name"] for t in await db.find_topics("m")] == ["Acme", "MIT"]


async def test_migrate_and_reset(tmp_path):
    path = str(tmp_path / "init.db")
    migrate_database(path)
    assert check_sqlite(path)

    db = Database(path)
    await db.connect()
    await db.create(user_doc("alice"))
    await db.disconnect()

    migrate_database(path)
    await db.connect()
    assert await db.find_one(name="alice") is not None
    await db.disconnect()

    reset_database(path)
    await db.connect()
    assert await db.find() == []
    await db.disconnect()
