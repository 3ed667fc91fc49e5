"""Reviews blueprint: workshop reviews and featured testimonials."""

from __future__ import annotations

from flask import Blueprint, jsonify, request
from flask_jwt_extended import jwt_required
from sqlalchemy.exc import IntegrityError
from werkzeug.exceptions import BadRequest, Forbidden, NotFound

from models import db
from models.review import Review
from models.workshop import Workshop
from utils.current_user import require_instructor, require_user
from utils.request_validation import get_string, parse_int_arg, parse_json_request

reviews_bp = Blueprint("reviews", __name__)

FEATURED_LIMIT = 12
MAX_PAGE_SIZE = 50


def _get_review_or_404(review_id: int) -> Review:
    review = db.session.get(Review, review_id)
    if review is None:
        raise NotFound("Review not found.")
    return review


@reviews_bp.route("", methods=["GET"])
def list_reviews():
    """Return a page of a workshop's reviews, newest first."""

    workshop_id = parse_int_arg(request.args.get("workshop_id"), "workshop_id", 0, minimum=1)
    if not workshop_id:
        raise BadRequest("workshop_id is required.")
    limit = min(parse_int_arg(request.args.get("limit"), "limit", 10, minimum=1), MAX_PAGE_SIZE)
    offset = parse_int_arg(request.args.get("offset"), "offset", 0)

    query = Review.query.filter_by(workshop_id=workshop_id)
    total = query.count()
    reviews = (
        query.order_by(Review.created_at.desc(), Review.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )

    return jsonify(
        {
            "reviews": [review.to_dict() for review in reviews],
            "pagination": {
                "total": total,
                "offset": offset,
                "limit": limit,
                "hasMore": offset + len(reviews) < total,
            },
        }
    )


@reviews_bp.route("", methods=["POST"])
@jwt_required()
def create_review():
    """Review a workshop the authenticated user attended."""

    user = require_user()
    payload = parse_json_request(
        request,
        required_keys=("workshopId", "circleColor", "circleFont", "circleText"),
    )

    workshop_id = payload.get("workshopId")
    if isinstance(workshop_id, bool) or not isinstance(workshop_id, int):
        raise BadRequest("Invalid workshop ID.")
    workshop = db.session.get(Workshop, workshop_id)
    if workshop is None:
        raise NotFound("Workshop not found.")
    if not workshop.has_participant(user):
        raise Forbidden("Only registered participants can review this workshop.")

    if Review.query.filter_by(user_id=user.id, workshop_id=workshop.id).first() is not None:
        raise BadRequest("You have already reviewed this workshop.")

    review = Review(
        user_id=user.id,
        workshop_id=workshop.id,
        user_name=user.name,
        circle_color=get_string(payload, "circleColor"),
        circle_font=get_string(payload, "circleFont"),
        circle_text=get_string(payload, "circleText"),
        comment=get_string(payload, "comment") or "",
    )
    db.session.add(review)
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        raise BadRequest("You have already reviewed this workshop.") from exc

    return jsonify(review.to_dict()), 201


@reviews_bp.route("/mine", methods=["GET"])
@jwt_required()
def my_reviews():
    user = require_user()
    reviews = user.reviews.order_by(Review.created_at.desc()).all()
    return jsonify({"reviews": [review.to_dict() for review in reviews]})


@reviews_bp.route("/<int:review_id>", methods=["DELETE"])
@jwt_required()
def delete_review(review_id: int):
    user = require_user()
    review = _get_review_or_404(review_id)
    if review.user_id != user.id:
        raise Forbidden("You can only delete your own reviews.")

    db.session.delete(review)
    db.session.commit()
    return jsonify({"message": "Review deleted successfully."})


@reviews_bp.route("/featured", methods=["GET"])
def featured_reviews():
    reviews = (
        Review.query.filter_by(featured=True)
        .order_by(Review.created_at.desc())
        .limit(FEATURED_LIMIT)
        .all()
    )
    return jsonify([review.to_dict() for review in reviews])


@reviews_bp.route("/<int:review_id>/feature", methods=["POST", "DELETE"])
@jwt_required()
def toggle_featured(review_id: int):
    """Feature (POST) or unfeature (DELETE) a review. Instructors only."""

    require_instructor()
    review = _get_review_or_404(review_id)
    review.featured = request.method == "POST"
    db.session.commit()
    return jsonify(review.to_dict())
