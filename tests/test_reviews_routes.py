"""Tests for workshop reviews and featured testimonials."""

from __future__ import annotations

from datetime import timedelta

import pytest
from flask.testing import FlaskClient

from models import db, utcnow
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
    """An instructor, a past workshop and one participant."""

    instructor_id, instructor_headers = _create_user(app, "teach@example.com", "instructor")
    participant_id, participant_headers = _create_user(app, "ada@example.com")
    _, outsider_headers = _create_user(app, "bob@example.com")

    with app.app_context():
        start = utcnow() - timedelta(days=2)
        workshop = Workshop(
            name="Glitch art",
            description="Break images",
            start_date=start,
            end_date=start + timedelta(hours=3),
            image_url="/images/glitch.png",
            categories=["art"],
            level="beginner",
            location="Lab 3",
        )
        workshop.instructors.append(db.session.get(User, instructor_id))
        workshop.participants.append(db.session.get(User, participant_id))
        db.session.add(workshop)
        db.session.commit()
        workshop_id = workshop.id

    return {
        "workshop_id": workshop_id,
        "instructor": instructor_headers,
        "participant": participant_headers,
        "outsider": outsider_headers,
    }


def _review_payload(workshop_id, **overrides) -> dict:
    payload = {
        "workshopId": workshop_id,
        "circleColor": "#ff00ff",
        "circleFont": "monospace",
        "circleText": "wow",
        "comment": "Loved it",
    }
    payload.update(overrides)
    return payload


def test_participant_can_review_once(client: FlaskClient, setting):
    workshop_id = setting["workshop_id"]

    response = client.post(
        "/reviews", json=_review_payload(workshop_id), headers=setting["participant"]
    )
    assert response.status_code == 201
    data = response.get_json()
    assert data["workshopName"] == "Glitch art"
    assert data["userName"] == "ada"
    assert data["featured"] is False

    again = client.post(
        "/reviews", json=_review_payload(workshop_id), headers=setting["participant"]
    )
    assert again.status_code == 400


def test_review_validation(client: FlaskClient, setting):
    headers = setting["participant"]

    assert client.post(
        "/reviews", json=_review_payload(setting["workshop_id"], circleText=""), headers=headers
    ).status_code == 400
    assert client.post(
        "/reviews", json=_review_payload("abc"), headers=headers
    ).status_code == 400
    assert client.post(
        "/reviews", json=_review_payload(9999), headers=headers
    ).status_code == 404
    assert client.post(
        "/reviews", json=_review_payload(setting["workshop_id"]), headers=setting["outsider"]
    ).status_code == 403


def test_list_reviews_paginates(client: FlaskClient, app, setting):
    workshop_id = setting["workshop_id"]
    client.post("/reviews", json=_review_payload(workshop_id), headers=setting["participant"])

    page = client.get(f"/reviews?workshop_id={workshop_id}&limit=1").get_json()
    assert page["pagination"] == {"total": 1, "offset": 0, "limit": 1, "hasMore": False}
    assert page["reviews"][0]["circleText"] == "wow"

    assert client.get("/reviews").status_code == 400
    assert client.get(f"/reviews?workshop_id={workshop_id}&limit=0").status_code == 400


def test_my_reviews_and_delete(client: FlaskClient, setting):
    review_id = client.post(
        "/reviews", json=_review_payload(setting["workshop_id"]), headers=setting["participant"]
    ).get_json()["id"]

    mine = client.get("/reviews/mine", headers=setting["participant"]).get_json()
    assert [review["id"] for review in mine["reviews"]] == [review_id]

    assert client.delete(f"/reviews/{review_id}", headers=setting["outsider"]).status_code == 403
    assert client.delete(f"/reviews/{review_id}", headers=setting["participant"]).status_code == 200
    assert client.delete(f"/reviews/{review_id}", headers=setting["participant"]).status_code == 404


def test_featuring_reviews(client: FlaskClient, setting):
    review_id = client.post(
        "/reviews", json=_review_payload(setting["workshop_id"]), headers=setting["participant"]
    ).get_json()["id"]

    assert client.get("/reviews/featured").get_json() == []
    assert client.post(
        f"/reviews/{review_id}/feature", headers=setting["participant"]
    ).status_code == 403

    featured = client.post(f"/reviews/{review_id}/feature", headers=setting["instructor"])
    assert featured.status_code == 200
    assert featured.get_json()["featured"] is True
    assert [r["id"] for r in client.get("/reviews/featured").get_json()] == [review_id]

    client.delete(f"/reviews/{review_id}/feature", headers=setting["instructor"])
    assert client.get("/reviews/featured").get_json() == []
