"""Review model definition."""

from . import db, utcnow


class Review(db.Model):
    """A participant's review of a workshop, at most one per user and workshop."""

    __tablename__ = "reviews"
    __table_args__ = (
        db.UniqueConstraint("user_id", "workshop_id", name="uq_reviews_user_workshop"),
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    workshop_id = db.Column(
        db.Integer,
        db.ForeignKey("workshops.id"),
        nullable=False,
        index=True,
    )
    user_name = db.Column(db.String(120), nullable=False)
    circle_color = db.Column(db.String(32), nullable=False)
    circle_font = db.Column(db.String(64), nullable=False)
    circle_text = db.Column(db.String(64), nullable=False)
    comment = db.Column(db.Text, nullable=False, default="")
    featured = db.Column(
        db.Boolean,
        nullable=False,
        default=False,
        server_default=db.false(),
    )
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    author = db.relationship("User", backref=db.backref("reviews", lazy="dynamic"))
    workshop = db.relationship("Workshop", backref=db.backref("reviews", lazy="dynamic"))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "workshopId": self.workshop_id,
            "workshopName": self.workshop.name if self.workshop else None,
            "userName": self.user_name,
            "circleColor": self.circle_color,
            "circleFont": self.circle_font,
            "circleText": self.circle_text,
            "comment": self.comment,
            "featured": self.featured,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }
