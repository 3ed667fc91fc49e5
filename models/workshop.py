"""Workshop model and its instructor/participant association tables."""

from datetime import datetime
from typing import Optional

from sqlalchemy import func, select

from . import db, utcnow

WORKSHOP_STATUSES = ("future", "ongoing", "past", "canceled")


workshop_instructors = db.Table(
    "workshop_instructors",
    db.Column("workshop_id", db.Integer, db.ForeignKey("workshops.id"), primary_key=True),
    db.Column("user_id", db.Integer, db.ForeignKey("users.id"), primary_key=True),
)

workshop_registrations = db.Table(
    "workshop_registrations",
    db.Column("workshop_id", db.Integer, db.ForeignKey("workshops.id"), primary_key=True),
    db.Column("user_id", db.Integer, db.ForeignKey("users.id"), primary_key=True),
    db.Column("created_at", db.DateTime, nullable=False, default=utcnow),
)


class Workshop(db.Model):
    """A scheduled workshop users can book a seat in."""

    __tablename__ = "workshops"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=False)
    start_date = db.Column(db.DateTime, nullable=False)
    end_date = db.Column(db.DateTime, nullable=False)
    image_url = db.Column(db.String(512), nullable=False)
    badge_name = db.Column(db.String(120), nullable=True)
    categories = db.Column(db.JSON, nullable=False, default=list)
    level = db.Column(db.String(64), nullable=False)
    location = db.Column(db.String(255), nullable=False)
    capacity = db.Column(db.Integer, nullable=False, default=10)
    bg_color = db.Column(db.String(16), nullable=False, default="#ffffff")
    canceled = db.Column(
        db.Boolean,
        nullable=False,
        default=False,
        server_default=db.false(),
    )
    reminder_sent = db.Column(
        db.Boolean,
        nullable=False,
        default=False,
        server_default=db.false(),
    )
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    instructors = db.relationship(
        "User",
        secondary=workshop_instructors,
        backref=db.backref("taught_workshops", lazy="dynamic"),
    )
    participants = db.relationship(
        "User",
        secondary=workshop_registrations,
        backref=db.backref("registered_workshops", lazy="dynamic"),
    )

    def status(self, now: Optional[datetime] = None) -> str:
        """Return the lifecycle status derived from the schedule."""

        if self.canceled:
            return "canceled"
        now = now or utcnow()
        if now < self.start_date:
            return "future"
        if now <= self.end_date:
            return "ongoing"
        return "past"

    @property
    def registered_count(self) -> int:
        if self.id is None:
            return 0
        return db.session.scalar(
            select(func.count())
            .select_from(workshop_registrations)
            .where(workshop_registrations.c.workshop_id == self.id)
        )

    def is_full(self) -> bool:
        return self.registered_count >= self.capacity

    def has_instructor(self, user) -> bool:
        return any(instructor.id == user.id for instructor in self.instructors)

    def has_participant(self, user) -> bool:
        return db.session.scalar(
            select(func.count())
            .select_from(workshop_registrations)
            .where(
                workshop_registrations.c.workshop_id == self.id,
                workshop_registrations.c.user_id == user.id,
            )
        ) > 0

    def to_dict(self) -> dict:
        """Serialize the workshop into a dictionary."""

        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "startDate": self.start_date.isoformat() if self.start_date else None,
            "endDate": self.end_date.isoformat() if self.end_date else None,
            "imageUrl": self.image_url,
            "badgeName": self.badge_name,
            "categories": list(self.categories or []),
            "level": self.level,
            "location": self.location,
            "capacity": self.capacity,
            "registeredCount": self.registered_count,
            "bgColor": self.bg_color,
            "canceled": self.canceled,
            "reminderSent": self.reminder_sent,
            "status": self.status(),
            "instructorIds": [instructor.id for instructor in self.instructors],
        }

    def __repr__(self) -> str:
        return f"<Workshop id={self.id} name={self.name!r}>"
