"""Seed demo users, workshops, registrations and reviews."""

from datetime import timedelta

from app import create_app
from models import db, utcnow
from models.review import Review
from models.user import User
from models.workshop import Workshop


def get_or_create_user(
    email: str,
    name: str,
    role: str,
    password: str,
) -> User:
    user = User.query.filter_by(email=email).first()
    if user is None:
        user = User(email=email, name=name, role=role)
        db.session.add(user)
    else:
        user.name = name
        user.role = role
    user.mark_verified()
    user.set_password(password)
    return user


def get_or_create_workshop(instructor: User, **fields) -> Workshop:
    workshop = Workshop.query.filter_by(name=fields["name"]).first()
    if workshop is None:
        workshop = Workshop(**fields)
        db.session.add(workshop)
    else:
        for key, value in fields.items():
            setattr(workshop, key, value)
    if instructor not in workshop.instructors:
        workshop.instructors.append(instructor)
    return workshop


def main() -> None:
    app = create_app()
    with app.app_context():
        instructor = get_or_create_user(
            "instructor@example.com", "Ada", "instructor", "InstructorPass123"
        )
        participant = get_or_create_user(
            "participant@example.com", "Grace", "user", "ParticipantPass123"
        )

        now = utcnow().replace(minute=0, second=0, microsecond=0)
        workshops_data = [
            {
                "name": "Glitch Art Basics",
                "description": "Bend pixels and break codecs on purpose.",
                "start_date": now - timedelta(days=14),
                "end_date": now - timedelta(days=14) + timedelta(hours=3),
                "image_url": "/images/workshops/glitch-basics.jpg",
                "badge_name": "Pixel Bender",
                "categories": ["art", "digital"],
                "level": "beginner",
                "location": "Milan",
                "capacity": 12,
            },
            {
                "name": "Creative Coding with Shaders",
                "description": "Write fragment shaders that react to sound.",
                "start_date": now + timedelta(days=10),
                "end_date": now + timedelta(days=10, hours=4),
                "image_url": "/images/workshops/shaders.jpg",
                "badge_name": "Shader Wizard",
                "categories": ["coding", "digital"],
                "level": "intermediate",
                "location": "Online",
                "capacity": 20,
            },
        ]
        workshops = [
            get_or_create_workshop(instructor, **data) for data in workshops_data
        ]
        db.session.flush()

        past_workshop = workshops[0]
        if participant not in past_workshop.participants:
            past_workshop.participants.append(participant)
        db.session.flush()

        review = Review.query.filter_by(
            user_id=participant.id, workshop_id=past_workshop.id
        ).first()
        if review is None:
            db.session.add(
                Review(
                    user_id=participant.id,
                    workshop_id=past_workshop.id,
                    user_name=participant.name,
                    circle_color="#ff4d6d",
                    circle_font="Secular One",
                    circle_text="WOW",
                    comment="Loved every broken frame.",
                    featured=True,
                )
            )

        db.session.commit()
        print(f"Seeded {len(workshops)} workshops for {instructor.email}")


if __name__ == "__main__":
    main()
