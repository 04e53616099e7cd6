"""
Rating routes. Reads are public; writes need a signed-in party.
"""

from fastapi import APIRouter, Depends, Query
from typing import Optional

from api.auth import CurrentUser, get_current_user, public
from api.controllers.ratings import RatingController
from api.models.rating import (
    UserRatingCreate,
    ProductRatingCreate,
    UserRatingResponse,
    ProductRatingResponse,
)
from api.services.container import ServiceContainer, get_container
from src.models.rating import RatingPage, ProductRatingPage, RatingStats

router = APIRouter()


def get_rating_controller(container: ServiceContainer = Depends(get_container)) -> RatingController:
    return RatingController(container.rating_service)


@router.post("/ratings/users", response_model=UserRatingResponse, status_code=201)
async def rate_user(
    request: UserRatingCreate,
    user: CurrentUser = Depends(get_current_user),
    controller: RatingController = Depends(get_rating_controller)
):
    """
    Rate the other party of a delivered order or a completed trade.
    One rating per order or trade.
    """
    return controller.rate_user(user, request)


@router.post("/ratings/products", response_model=ProductRatingResponse, status_code=201)
async def rate_product(
    request: ProductRatingCreate,
    user: CurrentUser = Depends(get_current_user),
    controller: RatingController = Depends(get_rating_controller)
):
    return controller.rate_product(user, request)


@router.get("/ratings/users/{user_id}", response_model=RatingPage)
@public
async def get_user_ratings(
    user_id: str,
    page: Optional[int] = Query(None),
    page_size: Optional[int] = Query(None),
    controller: RatingController = Depends(get_rating_controller)
):
    return controller.user_ratings(user_id, page, page_size)


@router.get("/ratings/users/{user_id}/stats", response_model=RatingStats)
@public
async def get_user_rating_stats(
    user_id: str,
    controller: RatingController = Depends(get_rating_controller)
):
    return controller.user_stats(user_id)


@router.get("/ratings/products/{product_id}", response_model=ProductRatingPage)
@public
async def get_product_ratings(
    product_id: str,
    page: Optional[int] = Query(None),
    page_size: Optional[int] = Query(None),
    controller: RatingController = Depends(get_rating_controller)
):
    return controller.product_ratings(product_id, page, page_size)


@router.get("/ratings/products/{product_id}/stats", response_model=RatingStats)
@public
async def get_product_rating_stats(
    product_id: str,
    controller: RatingController = Depends(get_rating_controller)
):
    return controller.product_stats(product_id)


@router.post("/ratings/products/{rating_id}/helpful", response_model=ProductRatingResponse)
async def mark_rating_helpful(
    rating_id: str,
    user: CurrentUser = Depends(get_current_user),
    controller: RatingController = Depends(get_rating_controller)
):
    return controller.mark_helpful(rating_id)
