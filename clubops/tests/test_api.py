"""
Тесты HTTP API модуля Fleet: авторизация, коды ошибок, основные сценарии.

Данные создаются только через API, каждый запрос работает в своей сессии.
"""
from conftest import API


def _zone(client, headers, name="Общий зал", responsible_id="shared_pool"):
    resp = client.post(f"{API}/zones/", json={"name": name, "responsible_id": responsible_id}, headers=headers)
    assert resp.status_code == 201
    return resp.json()


def _workstation(client, headers, name, zone_id, **fields):
    resp = client.post(
        f"{API}/workstations/", json={"name": name, "zone_id": zone_id, **fields}, headers=headers
    )
    assert resp.status_code == 201
    return resp.json()


def _equipment(client, headers, name, eq_type="PC", workstation_id=None, **fields):
    resp = client.post(
        f"{API}/equipment/",
        json={"name": name, "type": eq_type, "workstation_id": workstation_id, **fields},
        headers=headers,
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"
    assert resp.json()["timezone"] == "Europe/Moscow"


def test_fleet_requires_token(client, auth_headers):
    assert client.get(f"{API}/zones/").status_code == 401
    bad = client.get(f"{API}/zones/", headers={"Authorization": "Bearer garbage"})
    assert bad.status_code == 401

    info = client.get(f"{API}/", headers=auth_headers())
    assert info.status_code == 200
    assert info.json()["module"] == "fleet"


def test_zone_responsible_propagates(client, auth_headers):
    h = auth_headers()
    zone = _zone(client, h)
    ws = _workstation(client, h, "W1", zone["id"])
    assert ws["responsible_id"] == "shared_pool"
    assert ws["zone_name"] == "Общий зал"

    resp = client.patch(f"{API}/zones/{zone['id']}", json={"responsible_id": "emp-9"}, headers=h)
    assert resp.status_code == 200
    assert resp.json()["workstation_count"] == 1
    assert client.get(f"{API}/workstations/{ws['id']}", headers=h).json()["responsible_id"] == "emp-9"

    dup = client.post(f"{API}/zones/", json={"name": "Общий зал"}, headers=h)
    assert dup.status_code == 409


def test_zone_and_workstation_delete_guards(client, auth_headers):
    h = auth_headers()
    zone = _zone(client, h)
    ws = _workstation(client, h, "W1", zone["id"])
    _equipment(client, h, "PC-1", workstation_id=ws["id"])

    resp = client.delete(f"{API}/zones/{zone['id']}", headers=h)
    assert resp.status_code == 409
    assert resp.json()["code"] == "zone_not_empty"

    resp = client.delete(f"{API}/workstations/{ws['id']}", headers=h)
    assert resp.status_code == 409
    assert resp.json()["code"] == "workstation_not_empty"


def test_intake_slot_occupied(client, auth_headers):
    h = auth_headers()
    zone = _zone(client, h)
    ws = _workstation(client, h, "W1", zone["id"])
    _equipment(client, h, "PC-1", workstation_id=ws["id"])
    _equipment(client, h, "MON-1", "MONITOR", workstation_id=ws["id"])

    resp = client.post(
        f"{API}/equipment/", json={"name": "PC-2", "type": "PC", "workstation_id": ws["id"]}, headers=h
    )
    assert resp.status_code == 409
    assert resp.json()["code"] == "slot_occupied"


def test_maintenance_config_validation(client, auth_headers):
    h = auth_headers()
    monitor = _equipment(client, h, "MON-1", "MONITOR")
    resp = client.put(
        f"{API}/equipment/{monitor['id']}/maintenance-config", json={"thermal_interval_days": 90}, headers=h
    )
    assert resp.status_code == 400
    assert resp.json()["code"] == "ineligible_equipment_type"

    resp = client.put(
        f"{API}/equipment/{monitor['id']}/maintenance-config", json={"cleaning_interval_days": 0}, headers=h
    )
    assert resp.status_code == 400
    assert resp.json()["code"] == "invalid_interval"


def test_unknown_equipment_is_404(client, auth_headers):
    resp = client.get(f"{API}/equipment/00000000-0000-0000-0000-000000000001", headers=auth_headers())
    assert resp.status_code == 404
    assert resp.json()["code"] == "not_found"


def test_plan_complete_verify_flow(client, auth_headers):
    manager = auth_headers("manager")
    worker = auth_headers("emp-1")
    zone = _zone(client, manager)
    ws = _workstation(client, manager, "W1", zone["id"])
    pc = _equipment(client, manager, "PC-1", workstation_id=ws["id"])

    plan = {"date_from": "2024-05-01", "date_to": "2024-05-31"}
    assert client.post(f"{API}/maintenance/plan", json=plan, headers=manager).json()["created"] == 1
    again = client.post(f"{API}/maintenance/plan", json=plan, headers=manager).json()
    assert again == {"created": 0, "existing": 1, "errors": []}

    listing = client.get(
        f"{API}/maintenance/", params={"date_from": "2024-05-01", "date_to": "2024-05-31"}, headers=worker
    ).json()
    [task] = listing["tasks"]
    assert task["equipment_id"] == pc["id"]
    assert task["workstation_name"] == "W1"
    assert task["due_date"] == "2024-05-01"

    resp = client.post(f"{API}/maintenance/{task['id']}/complete", json={"photos": ["", None]}, headers=worker)
    assert resp.status_code == 400
    assert resp.json()["code"] == "evidence_required"

    resp = client.post(
        f"{API}/maintenance/{task['id']}/complete",
        json={"photos": ["https://cdn/pc-1.jpg"], "notes": "Продул пыль"},
        headers=worker,
    )
    assert resp.status_code == 200
    assert resp.json()["status"] == "COMPLETED"
    assert resp.json()["completed_by"] == "emp-1"

    pending = client.get(f"{API}/maintenance/verification", headers=manager).json()
    assert [t["id"] for t in pending] == [task["id"]]

    resp = client.post(f"{API}/maintenance/{task['id']}/verify", json={"note": "Чисто"}, headers=manager)
    assert resp.json()["status"] == "VERIFIED"
    assert resp.json()["verified_by"] == "manager"

    resp = client.post(f"{API}/maintenance/{task['id']}/verify", json={}, headers=manager)
    assert resp.status_code == 409
    body = resp.json()
    assert body["code"] == "invalid_transition"
    assert body["current"] == "VERIFIED"

    history = client.get(f"{API}/maintenance/{task['id']}/history", headers=manager).json()
    assert len(history["verifications"]) == 1
    assert any(row["field_label"] == "Статус" for row in history["history"])


def test_reject_requires_reason(client, auth_headers):
    h = auth_headers()
    zone = _zone(client, h)
    ws = _workstation(client, h, "W1", zone["id"])
    _equipment(client, h, "PC-1", workstation_id=ws["id"])
    client.post(f"{API}/maintenance/plan", json={"date_from": "2024-05-01", "date_to": "2024-05-31"}, headers=h)
    [task] = client.get(
        f"{API}/maintenance/", params={"date_from": "2024-05-01", "date_to": "2024-05-31"}, headers=h
    ).json()["tasks"]
    client.post(f"{API}/maintenance/{task['id']}/complete", json={"photos": ["https://cdn/1.jpg"]}, headers=h)

    resp = client.post(f"{API}/maintenance/{task['id']}/reject", json={"reason": ""}, headers=h)
    assert resp.status_code == 400
    assert resp.json()["code"] == "reason_required"

    resp = client.post(f"{API}/maintenance/{task['id']}/reject", json={"reason": "Пыль осталась"}, headers=h)
    assert resp.json()["status"] == "PENDING"
    assert resp.json()["verification_status"] == "REJECTED"
    assert resp.json()["photos"] == []


def test_move_swap(client, auth_headers):
    h = auth_headers("manager")
    zone = _zone(client, h)
    w1 = _workstation(client, h, "W1", zone["id"])
    w2 = _workstation(client, h, "W2", zone["id"])
    e = _equipment(client, h, "E", workstation_id=w1["id"])
    f = _equipment(client, h, "F", workstation_id=w2["id"])

    resp = client.post(
        f"{API}/equipment/move",
        json={"equipment_id": e["id"], "target_workstation_id": w2["id"], "reason": "Перестановка"},
        headers=h,
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["equipment"]["workstation_id"] == w2["id"]
    assert body["displaced"]["id"] == f["id"]
    assert body["displaced"]["workstation_id"] == w1["id"]

    again = client.post(
        f"{API}/equipment/move", json={"equipment_id": e["id"], "target_workstation_id": w2["id"]}, headers=h
    )
    assert again.status_code == 409
    assert again.json()["code"] == "noop_move"

    movements = client.get(f"{API}/equipment/movements", headers=h).json()
    assert len(movements) == 2
    history = client.get(f"{API}/equipment/{e['id']}/history", headers=h).json()
    assert len(history) >= 1


def test_decommission(client, auth_headers):
    h = auth_headers("manager")
    zone = _zone(client, h)
    ws = _workstation(client, h, "W1", zone["id"])
    pc = _equipment(client, h, "PC-1", workstation_id=ws["id"])

    resp = client.post(f"{API}/equipment/{pc['id']}/decommission", json={"reason": "Сгорел"}, headers=h)
    assert resp.status_code == 200
    assert resp.json()["is_active"] is False
    assert resp.json()["workstation_id"] is None

    resp = client.post(f"{API}/equipment/{pc['id']}/decommission", json={"reason": "Сгорел"}, headers=h)
    assert resp.status_code == 409
    assert resp.json()["code"] == "equipment_inactive"


def test_issue_and_comments(client, auth_headers):
    reporter = auth_headers("emp-1")
    other = auth_headers("emp-2")
    pc = _equipment(client, reporter, "PC-1")

    resp = client.post(
        f"{API}/issues/", json={"equipment_id": pc["id"], "title": "Не включается", "severity": "HIGH"},
        headers=reporter,
    )
    assert resp.status_code == 201
    issue = resp.json()
    assert issue["reported_by"] == "emp-1"
    assert issue["status"] == "OPEN"

    resp = client.post(f"{API}/issues/{issue['id']}/status", json={"status": "CLOSED"}, headers=reporter)
    assert resp.status_code == 409
    client.post(f"{API}/issues/{issue['id']}/status", json={"status": "IN_PROGRESS"}, headers=other)
    resp = client.post(f"{API}/issues/{issue['id']}/resolve", json={"notes": ""}, headers=other)
    assert resp.status_code == 400
    assert resp.json()["code"] == "notes_required"

    comments_url = f"{API}/issues/{issue['id']}/comments/"
    comment = client.post(comments_url, json={"content": "Проверил питание"}, headers=reporter).json()
    assert comment["author_id"] == "emp-1"

    resp = client.patch(f"{comments_url}{comment['id']}", json={"content": "Чужая правка"}, headers=other)
    assert resp.status_code == 403
    assert resp.json()["code"] == "permission_denied"

    assert client.delete(f"{comments_url}{comment['id']}", headers=reporter).status_code == 200
    comments = client.get(comments_url, headers=reporter).json()
    assert all(c["is_system_message"] for c in comments)

    listing = client.get(f"{API}/issues/", headers=reporter).json()
    assert listing["counts"]["IN_PROGRESS"] == 1


def test_delete_issue_only_by_reporter(client, auth_headers):
    reporter = auth_headers("emp-1")
    other = auth_headers("emp-2")
    pc = _equipment(client, reporter, "PC-1")
    issue = client.post(
        f"{API}/issues/", json={"equipment_id": pc["id"], "title": "Не включается"}, headers=reporter
    ).json()

    resp = client.delete(f"{API}/issues/{issue['id']}", headers=other)
    assert resp.status_code == 403
    assert resp.json()["code"] == "permission_denied"

    assert client.delete(f"{API}/issues/{issue['id']}", headers=reporter).status_code == 200
    assert client.get(f"{API}/issues/{issue['id']}", headers=reporter).status_code == 404


def test_equipment_instructions(client, auth_headers):
    admin = auth_headers("admin-1")
    other = auth_headers("admin-2")
    url = f"{API}/instructions/"

    assert client.get(url, headers=admin).json() == []
    assert client.get(f"{url}PC", headers=admin).status_code == 404

    saved = client.put(f"{url}PC", json={"instructions": "Продуть пыль, проверить кулеры"}, headers=admin)
    assert saved.status_code == 200
    assert saved.json()["updated_by"] == "admin-1"

    updated = client.put(f"{url}PC", json={"instructions": "Продуть пыль"}, headers=other).json()
    assert updated["id"] == saved.json()["id"]
    assert updated["updated_by"] == "admin-2"
    client.put(f"{url}MONITOR", json={"instructions": "Протереть экран"}, headers=admin)

    assert [i["equipment_type"] for i in client.get(url, headers=admin).json()] == ["MONITOR", "PC"]
    only_pc = client.get(url, params={"type": "PC"}, headers=admin).json()
    assert [i["instructions"] for i in only_pc] == ["Продуть пыль"]

    assert client.put(f"{url}TOASTER", json={"instructions": "?"}, headers=admin).status_code == 422
