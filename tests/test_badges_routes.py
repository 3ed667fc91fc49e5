"""Tests for awarding workshop badges."""

from __future__ import annotations

from datetime import timedelta

import pytest
from flask.testing import FlaskClient

from models import db, utcnow
from models.badge import Badge
from models.user import User
from models.workshop import Workshop
from services.sessions import SessionIssuer


def _create_user(app, email: str, role: str = "user") -> tuple[int, dict]:
    with app.app_context():
        user = User(email=email, name=email.split("@")[0], role=role, is_verified=True)
        user.set_password("password123")
        db.session.add(user)
        db.session.commit()
        return user.id, {"Authorization": f"Bearer {SessionIssuer().issue_full(user)}"}


@pytest.fixture()
def setting(app):
    """A finished workshop with one participant, its instructor and an outsider."""

    instructor_id, instructor = _create_user(app, "teach@example.com", "instructor")
    _, other_instructor = _create_user(app, "other@example.com", "instructor")
    participant_id, participant = _create_user(app, "ada@example.com")
    outsider_id, _ = _create_user(app, "bob@example.com")

    with app.app_context():
        start = utcnow() - timedelta(days=1)
        workshop = Workshop(
            name="Circuit bending",
            description="Make noise",
            start_date=start,
            end_date=start + timedelta(hours=4),
            image_url="/images/bending.png",
            categories=["electronics"],
            level="beginner",
            location="Lab 1",
            badge_name="Bender",
        )
        workshop.instructors.append(db.session.get(User, instructor_id))
        workshop.participants.append(db.session.get(User, participant_id))
        db.session.add(workshop)
        db.session.commit()
        workshop_id = workshop.id

    return {
        "workshop_id": workshop_id,
        "participant_id": participant_id,
        "outsider_id": outsider_id,
        "instructor": instructor,
        "other_instructor": other_instructor,
        "participant": participant,
    }


def _award(client: FlaskClient, headers: dict, user_id, workshop_id):
    return client.post(
        "/badges/award", json={"userId": user_id, "workshopId": workshop_id}, headers=headers
    )


def test_instructor_awards_badge_once(client: FlaskClient, setting):
    response = _award(client, setting["instructor"], setting["participant_id"], setting["workshop_id"])

    assert response.status_code == 200
    badge = response.get_json()["badge"]
    assert badge["name"] == "Bender"
    assert badge["userId"] == setting["participant_id"]
    assert badge["description"] == "Completed the Circuit bending workshop"

    again = _award(client, setting["instructor"], setting["participant_id"], setting["workshop_id"])
    assert again.status_code == 400

    mine = client.get("/badges/mine", headers=setting["participant"]).get_json()
    assert [item["name"] for item in mine["badges"]] == ["Bender"]

    participants = client.get(
        f"/workshops/{setting['workshop_id']}/participants", headers=setting["instructor"]
    ).get_json()["participants"]
    assert participants[0]["badgeAwarded"] is True


def test_badge_award_permissions(client: FlaskClient, setting):
    args = (setting["participant_id"], setting["workshop_id"])

    assert _award(client, setting["participant"], *args).status_code == 403
    assert _award(client, setting["other_instructor"], *args).status_code == 403


def test_badge_award_validation(client: FlaskClient, app, setting):
    headers = setting["instructor"]

    assert _award(client, headers, setting["outsider_id"], setting["workshop_id"]).status_code == 400
    assert _award(client, headers, 9999, setting["workshop_id"]).status_code == 404
    assert _award(client, headers, setting["participant_id"], 9999).status_code == 404
    assert _award(client, headers, "ada", setting["workshop_id"]).status_code == 400

    with app.app_context():
        assert Badge.query.count() == 0


def test_badge_name_defaults_to_workshop_name(client: FlaskClient, app, setting):
    with app.app_context():
        db.session.get(Workshop, setting["workshop_id"]).badge_name = None
        db.session.commit()

    response = _award(client, setting["instructor"], setting["participant_id"], setting["workshop_id"])

    assert response.get_json()["badge"]["name"] == "Circuit bending Badge"


def test_deleting_account_removes_badges(client: FlaskClient, app, setting):
    _award(client, setting["instructor"], setting["participant_id"], setting["workshop_id"])

    response = client.delete(
        "/users/me", json={"password": "password123"}, headers=setting["participant"]
    )

    assert response.status_code == 200
    with app.app_context():
        assert Badge.query.count() == 0
