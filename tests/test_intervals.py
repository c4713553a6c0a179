"""
Interval catalogue and per-user interval selection.
"""
import pytest

from app.core.exceptions import Conflict
from app.models.user import User
from app.services import interval_service


def test_catalogue_is_seeded(db_session):
    assert interval_service.catalogue_seconds(db_session) == {60, 300, 600}


def test_duplicate_seconds_conflict(db_session):
    with pytest.raises(Conflict):
        interval_service.create_interval(db_session, 60, "Again")


def test_delete_clears_user_selection(db_session, regular_user):
    ten_minutes = next(i for i in interval_service.list_intervals(db_session) if i.interval_seconds == 600)
    interval_service.set_active_interval(db_session, regular_user, ten_minutes.id)

    cleared = interval_service.delete_interval(db_session, ten_minutes.id)

    assert cleared == 1
    db_session.expire_all()
    user = db_session.get(User, regular_user.id)
    assert user.active_interval_id is None
    interval, is_default = interval_service.get_active_interval(db_session, user)
    assert interval.interval_seconds == 60
    assert is_default is True


def test_list_and_activate(client, user_headers, db_session):
    data = client.get("/intervals/", headers=user_headers).json()["data"]
    assert [i["interval_seconds"] for i in data] == [60, 300, 600]
    assert not any(i["is_active"] for i in data)

    active = client.get("/intervals/active", headers=user_headers).json()
    assert active["isDefault"] is True
    assert active["data"]["interval_seconds"] == 60

    five_minutes = data[1]["id"]
    assert client.patch(f"/intervals/{five_minutes}/activate", headers=user_headers).status_code == 200
    active = client.get("/intervals/active", headers=user_headers).json()
    assert active["isDefault"] is False
    assert active["data"]["interval_seconds"] == 300

    assert client.patch("/intervals/9999/activate", headers=user_headers).status_code == 404


def test_admin_manages_catalogue(client, admin_headers, user_headers):
    payload = {"interval_seconds": 1800, "interval_name": "30 Minutes"}
    assert client.post("/intervals/", json=payload, headers=user_headers).status_code == 403

    response = client.post("/intervals/", json=payload, headers=admin_headers)
    assert response.status_code == 201
    interval_id = response.json()["data"]["id"]

    assert client.post("/intervals/", json=payload, headers=admin_headers).status_code == 409

    response = client.put(f"/intervals/{interval_id}", json={"interval_name": "Half hour"}, headers=admin_headers)
    assert response.json()["data"]["interval_name"] == "Half hour"

    response = client.delete(f"/intervals/{interval_id}", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["clearedUsers"] == 0


def test_deleted_interval_is_no_longer_accepted_for_logging(client, admin_headers, user_headers):
    data = client.get("/intervals/", headers=admin_headers).json()["data"]
    ten_minutes = next(i for i in data if i["interval_seconds"] == 600)
    client.delete(f"/intervals/{ten_minutes['id']}", headers=admin_headers)

    response = client.post("/logger/start", json={"humidity": "all", "interval": 600000}, headers=user_headers)
    assert response.status_code == 400
