from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from api.schemas import PointsResponse, ReferralRequest, ReferralResponse
from auth.utils import get_current_user
from db.database import get_db
from db.models import User
from services.points_service import apply_referral, get_balance

router = APIRouter(prefix="/points", tags=["points"], dependencies=[Depends(get_current_user)])


@router.get("", response_model=PointsResponse)
def get_points(user: User = Depends(get_current_user)):
    return get_balance(user)


@router.post("/referral", response_model=ReferralResponse)
def redeem_referral(
    req: ReferralRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    points = apply_referral(db, user, req.referral_code)
    db.commit()
    return ReferralResponse(success=True, points=points)
