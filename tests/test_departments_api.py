"""部门接口的集成测试用例。"""

from fastapi.testclient import TestClient

API = "/api/v1/departments"


def _create(client: TestClient, code: str, parent_id=None, **extra) -> dict:
    payload = {"name": extra.pop("name", f"{code} Department"), "code": code, "parent_id": parent_id, **extra}
    response = client.post(API, json=payload)
    assert response.status_code == 200, response.text
    return response.json()["data"]


def test_create_and_get_department(client: TestClient):
    """创建部门后可按 ID 与编码查询到同一条记录。"""
    response = client.post(API, json={"name": "Engineering", "code": "ENG"}, headers={"X-Actor-Id": "12"})

    assert response.status_code == 200
    payload = response.json()
    assert payload["code"] == 200
    assert payload["msg"] == "创建部门成功"
    data = payload["data"]
    assert data["path"] == "/ENG"
    assert data["level"] == 0
    assert data["created_by"] == 12

    detail = client.get(f"{API}/{data['id']}").json()
    assert detail["data"]["code"] == "ENG"
    assert detail["data"]["employee_count"] == 0
    assert client.get(f"{API}/code/ENG").json()["data"]["id"] == data["id"]


def test_request_id_is_echoed(client: TestClient):
    response = client.get(API, headers={"X-Request-ID": "req-123"})
    assert response.headers["x-request-id"] == "req-123"


def test_create_validation_errors(client: TestClient):
    response = client.post(API, json={"name": "Bad", "code": "A/B"})
    assert response.status_code == 422
    assert response.json()["msg"] == "请求参数验证失败"

    response = client.post(API, json={"name": "Orphan", "code": "ORPH", "parent_id": 999999})
    assert response.status_code == 404
    assert response.json()["data"]["kind"] == "parent_not_found"


def test_parent_id_zero_creates_root(client: TestClient):
    data = _create(client, "ROOT", parent_id=0)
    assert data["parent_id"] is None
    assert data["path"] == "/ROOT"


def test_duplicate_code_returns_conflict(client: TestClient):
    _create(client, "ENG")
    response = client.post(API, json={"name": "Other", "code": "ENG"})
    assert response.status_code == 409
    assert response.json()["data"]["kind"] == "duplicate_code"


def test_tree_and_navigation_endpoints(client: TestClient):
    eng = _create(client, "ENG")
    sw = _create(client, "SW", eng["id"])
    qa = _create(client, "QA", sw["id"])

    tree = client.get(f"{API}/tree").json()["data"]
    assert tree[0]["code"] == "ENG"
    assert tree[0]["children"][0]["children"][0]["code"] == "QA"

    subtree = client.get(f"{API}/{sw['id']}/subtree").json()["data"]
    assert subtree["code"] == "SW"
    assert [child["code"] for child in subtree["children"]] == ["QA"]

    path = client.get(f"{API}/{qa['id']}/path").json()["data"]
    assert [item["code"] for item in path] == ["ENG", "SW", "QA"]

    ancestors = client.get(f"{API}/{qa['id']}/ancestors").json()["data"]
    assert [item["code"] for item in ancestors] == ["ENG", "SW"]

    descendants = client.get(f"{API}/{eng['id']}/descendants").json()["data"]
    assert [item["code"] for item in descendants] == ["SW", "QA"]

    children = client.get(f"{API}/{eng['id']}/children").json()["data"]
    assert [item["code"] for item in children] == ["SW"]

    roots = client.get(f"{API}/roots").json()["data"]
    assert [item["code"] for item in roots] == ["ENG"]

    level_two = client.get(f"{API}/level/2").json()["data"]
    assert [item["code"] for item in level_two] == ["QA"]

    found = client.get(f"{API}/search", params={"keyword": "sw"}).json()["data"]
    assert [item["code"] for item in found] == ["SW"]

    stats = client.get(f"{API}/{eng['id']}/statistics").json()["data"]
    assert stats["total_child_count"] == 2
    assert stats["max_depth"] == 2


def test_move_endpoint(client: TestClient):
    eng = _create(client, "ENG")
    sw = _create(client, "SW", eng["id"])
    hr = _create(client, "HR")

    response = client.put(f"{API}/{hr['id']}/move", json={"parent_id": sw["id"]})
    assert response.status_code == 200
    assert response.json()["data"]["path"] == "/ENG/SW/HR"
    assert response.json()["data"]["level"] == 2

    response = client.put(f"{API}/{eng['id']}/move", json={"parent_id": sw["id"]})
    assert response.status_code == 400
    assert response.json()["data"]["kind"] == "circular_reference"
    assert client.get(f"{API}/{eng['id']}").json()["data"]["path"] == "/ENG"


def test_update_enabled_and_sort_order_endpoints(client: TestClient):
    eng = _create(client, "ENG")
    sw = _create(client, "SW", eng["id"])

    response = client.put(f"{API}/{eng['id']}", json={"code": "RND", "location": "HQ"})
    assert response.status_code == 200
    assert response.json()["data"]["path"] == "/RND"
    assert client.get(f"{API}/{sw['id']}").json()["data"]["path"] == "/RND/SW"

    response = client.put(f"{API}/{sw['id']}/enabled", json={"enabled": False})
    assert response.json()["data"]["enabled"] is False

    response = client.put(f"{API}/{sw['id']}/sort-order", json={"sort_order": 3})
    assert response.json()["data"]["sort_order"] == 3

    response = client.put(f"{API}/{sw['id']}/sort-order", json={"sort_order": -1})
    assert response.status_code == 422


def test_delete_endpoint(client: TestClient):
    eng = _create(client, "ENG")
    sw = _create(client, "SW", eng["id"])

    assert client.get(f"{API}/{eng['id']}/can-delete").json()["data"] is False
    response = client.delete(f"{API}/{eng['id']}")
    assert response.status_code == 400
    assert response.json()["data"]["kind"] == "has_children"

    response = client.delete(f"{API}/{sw['id']}")
    assert response.status_code == 200
    assert response.json()["data"] == {"id": sw["id"]}

    assert client.get(f"{API}/{sw['id']}").status_code == 404
    assert client.get(f"{API}/{eng['id']}").json()["data"]["is_parent"] is False


def test_rebuild_paths_endpoint(client: TestClient):
    eng = _create(client, "ENG")
    _create(client, "SW", eng["id"])

    response = client.post(f"{API}/rebuild-paths")
    assert response.status_code == 200
    assert response.json()["data"] == {"rewritten": 0}


def test_health_check(client: TestClient):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["data"]["status"] == "healthy"
