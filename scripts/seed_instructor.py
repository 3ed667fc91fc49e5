"""Seed a verified instructor account."""

import os

from app import create_app
from models import db
from models.user import User

INSTRUCTOR_EMAIL = os.getenv("SEED_INSTRUCTOR_EMAIL", "instructor@example.com")
INSTRUCTOR_PASSWORD = os.getenv("SEED_INSTRUCTOR_PASSWORD", "InstructorPass123")
INSTRUCTOR_NAME = os.getenv("SEED_INSTRUCTOR_NAME", "Ada")


def main() -> None:
    app = create_app()
    with app.app_context():
        instructor = User.query.filter_by(email=INSTRUCTOR_EMAIL).first()
        if instructor is None:
            instructor = User(
                email=INSTRUCTOR_EMAIL,
                name=INSTRUCTOR_NAME,
                role="instructor",
            )
            db.session.add(instructor)
            action = "created"
        else:
            instructor.role = "instructor"
            action = "updated"
        instructor.mark_verified()
        instructor.set_password(INSTRUCTOR_PASSWORD)
        db.session.commit()
        print(f"Instructor {action}: {INSTRUCTOR_EMAIL}")


if __name__ == "__main__":
    main()
