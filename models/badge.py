"""Badge model definition."""

from . import db, utcnow

DEFAULT_BADGE_IMAGE = "/images/badge.png"


class Badge(db.Model):
    """A completion badge an instructor awarded to a workshop participant."""

    __tablename__ = "badges"
    __table_args__ = (
        db.UniqueConstraint("user_id", "workshop_id", name="uq_badges_user_workshop"),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    workshop_id = db.Column(
        db.Integer,
        db.ForeignKey("workshops.id"),
        nullable=False,
        index=True,
    )
    awarded_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    name = db.Column(db.String(200), nullable=False)
    image = db.Column(db.String(512), nullable=False, default=DEFAULT_BADGE_IMAGE)
    description = db.Column(db.Text, nullable=False, default="")
    awarded_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    recipient = db.relationship(
        "User",
        foreign_keys=[user_id],
        backref=db.backref("badges", lazy="dynamic"),
    )
    workshop = db.relationship("Workshop", backref=db.backref("badges", lazy="dynamic"))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "workshopId": self.workshop_id,
            "name": self.name,
            "image": self.image,
            "description": self.description,
            "awardedBy": self.awarded_by_id,
            "awardedAt": self.awarded_at.isoformat() if self.awarded_at else None,
        }

    def __repr__(self) -> str:
        return f"<Badge user={self.user_id} workshop={self.workshop_id}>"
