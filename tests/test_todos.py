def test_todo_lifecycle(client, login, make_owner):
    ids = make_owner()
    login(ids["email"])

    r = client.post("/api/todos/createtodo", json={"title": "Service rowers", "description": "Chain oil"})
    assert r.status_code == 201, r.json
    todo = r.json["data"]
    assert todo["is_completed"] is False

    r = client.post("/api/todos/updatetodo", json={"id": todo["id"], "is_completed": True})
    assert r.status_code == 200
    assert r.json["data"]["is_completed"] is True

    r = client.post("/api/todos/gettodos", json={"is_completed": False})
    assert r.json["totalCount"] == 0
    r = client.post("/api/todos/gettodos", json={"is_completed": True})
    assert r.json["totalCount"] == 1

    r = client.post("/api/todos/deletetodo", json={"id": todo["id"]})
    assert r.status_code == 200
    r = client.post("/api/todos/gettodos", json={})
    assert r.json["totalCount"] == 0


def test_todo_requires_title_and_description(client, login, make_owner):
    ids = make_owner()
    login(ids["email"])
    r = client.post("/api/todos/createtodo", json={"title": "Only a title"})
    assert r.status_code == 400


def test_todos_are_private_to_their_owner(client, login, make_owner):
    mine = make_owner()
    other = make_owner("other@example.com")
    login(other["email"])
    r = client.post("/api/todos/createtodo", json={"title": "Theirs", "description": "x"})
    todo_id = r.json["data"]["id"]

    login(mine["email"])
    r = client.post("/api/todos/updatetodo", json={"id": todo_id, "title": "Mine now"})
    assert r.status_code == 404
