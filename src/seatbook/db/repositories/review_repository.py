"""Review repository for ratings in both directions."""

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from seatbook.review import RatingSummary, ReviewDirection
from seatbook.review import Review as ReviewDomain

from ..schema import Review
from ..utils import new_id, utc_now


class ReviewRepository:
    """Repository for review rows and rating averages."""

    def __init__(self, session: Session):
        self.session = session

    def create(
        self,
        booking_id: str,
        author_id: str,
        subject_id: str,
        direction: ReviewDirection,
        rating: int,
        comment: str | None,
    ) -> ReviewDomain:
        review = Review(
            id=new_id(),
            booking_id=booking_id,
            author_id=author_id,
            subject_id=subject_id,
            direction=direction.value,
            rating=rating,
            comment=comment,
            created_at=utc_now(),
        )
        self.session.add(review)
        self.session.flush()
        return self._to_domain(review)

    def exists(self, booking_id: str, direction: ReviewDirection) -> bool:
        stmt = select(func.count()).select_from(Review).where(
            Review.booking_id == booking_id,
            Review.direction == direction.value,
        )
        return (self.session.execute(stmt).scalar() or 0) > 0

    def reviewed_booking_ids(
        self, booking_ids: list[str], direction: ReviewDirection
    ) -> set[str]:
        if not booking_ids:
            return set()
        stmt = select(Review.booking_id).where(
            Review.booking_id.in_(booking_ids),
            Review.direction == direction.value,
        )
        return set(self.session.execute(stmt).scalars().all())

    def list_for_subject(self, subject_id: str, direction: ReviewDirection) -> list[ReviewDomain]:
        stmt = (
            select(Review)
            .where(Review.subject_id == subject_id, Review.direction == direction.value)
            .order_by(Review.created_at.desc())
        )
        return [self._to_domain(r) for r in self.session.execute(stmt).scalars().all()]

    def rating_summary(self, subject_id: str, direction: ReviewDirection) -> RatingSummary:
        return self.rating_summaries([subject_id], direction)[subject_id]

    def rating_summaries(
        self, subject_ids: list[str], direction: ReviewDirection
    ) -> dict[str, RatingSummary]:
        """Average rating per subject; subjects without reviews get ``average=None``."""
        summaries = {
            subject_id: RatingSummary(subject_id=subject_id, average=None, review_count=0)
            for subject_id in subject_ids
        }
        if not subject_ids:
            return summaries
        stmt = (
            select(Review.subject_id, func.avg(Review.rating), func.count())
            .where(Review.subject_id.in_(subject_ids), Review.direction == direction.value)
            .group_by(Review.subject_id)
        )
        for subject_id, average, count in self.session.execute(stmt).all():
            summaries[subject_id] = RatingSummary(
                subject_id=subject_id,
                average=float(average),
                review_count=count,
            )
        return summaries

    def _to_domain(self, review: Review) -> ReviewDomain:
        return ReviewDomain(
            review_id=review.id,
            booking_id=review.booking_id,
            author_id=review.author_id,
            subject_id=review.subject_id,
            direction=ReviewDirection(review.direction),
            rating=review.rating,
            comment=review.comment,
            created_at=review.created_at,
        )
