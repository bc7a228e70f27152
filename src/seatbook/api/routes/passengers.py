from fastapi import APIRouter

from seatbook.api.dependencies import PrincipalDep, ReviewsDep, StatsDep
from seatbook.review import RatingSummary, Review, ReviewDirection

router = APIRouter()


@router.get("/{passenger_id}/rating", response_model=RatingSummary)
def get_rating(passenger_id: str, principal: PrincipalDep, stats: StatsDep) -> RatingSummary:
    return stats.passenger_rating(principal, passenger_id)


@router.get("/{passenger_id}/reviews", response_model=list[Review])
def list_reviews(passenger_id: str, principal: PrincipalDep, reviews: ReviewsDep) -> list[Review]:
    """Reviews drivers left about this passenger."""
    return reviews.list_reviews(principal, passenger_id, ReviewDirection.DRIVER_TO_PASSENGER)
