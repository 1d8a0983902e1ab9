from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from dependencies import get_current_user
from database import get_db
from models.download_model import DownloadedFile
from models.payment_model import Payment
from models.user_model import User
from schemas.admin_schema import ProfileResponse

router = APIRouter()

RECENT_LIMIT = 5

@router.get("/", response_model=ProfileResponse,
            summary="Displaying the user profile",
            description="""
                            Returns the logged-in user with quota counters, the last five completed
                            payments and the last five downloads, newest first.
                        """,
            responses={
                401: {"description": "Not authenticated"}
            })
def get_profile(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    transactions = db.query(Payment).filter(
        Payment.user_id == user.id,
        Payment.status == "completed",
    ).order_by(Payment.completed_at.desc(), Payment.id.desc()).limit(RECENT_LIMIT).all()

    downloads = db.query(DownloadedFile).filter(
        DownloadedFile.user_id == user.id
    ).order_by(DownloadedFile.downloaded_at.desc(), DownloadedFile.id.desc()).limit(RECENT_LIMIT).all()

    return {"user": user, "transactions": transactions, "downloads": downloads}
