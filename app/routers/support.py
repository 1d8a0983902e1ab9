import logging

from database import get_db
from dependencies import get_current_user, get_current_admin
from fastapi import APIRouter, Depends, HTTPException, status
from models.support_model import SupportThread, SupportMessage
from models.user_model import User
from schemas.support_schema import SupportMessageRequest, SupportReplyRequest, SupportThreadResponse
from schemas.user_schema import MessageResponse
from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

logger = logging.getLogger(__name__)

router = APIRouter()


def _thread_out(thread: SupportThread) -> dict:
    return {
        "id": thread.id,
        "user_id": thread.user_id,
        "user_name": thread.user_name,
        "status": thread.status,
        "conversation": thread.messages,
    }


@router.post("/", response_model=MessageResponse, status_code=status.HTTP_201_CREATED,
             summary="Send a message to support",
             responses={400: {"description": "Message cannot be empty"}})
def send_support_message(request: SupportMessageRequest, user: User = Depends(get_current_user),
                         db: Session = Depends(get_db)):
    if not request.message.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Message cannot be empty")

    thread = db.query(SupportThread).filter(SupportThread.user_id == user.id).first()
    if not thread:
        thread = SupportThread(user_id=user.id, user_name=user.name)
        db.add(thread)
        db.flush()

    thread.messages.append(SupportMessage(sender="user", message=request.message))
    thread.status = "pending"
    thread.updated_at = func.now()
    db.commit()
    logger.info("Support message from user %s on thread %s", user.id, thread.id)

    return {"detail": "Message sent successfully!"}


@router.get("/", response_model=SupportThreadResponse, response_model_exclude_none=True,
            summary="The logged-in user's support conversation")
def get_user_support_messages(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    thread = db.query(SupportThread).options(selectinload(SupportThread.messages)).filter(
        SupportThread.user_id == user.id).first()
    if not thread:
        return {"conversation": []}
    return _thread_out(thread)


@router.get("/admin", response_model=list[SupportThreadResponse], summary="All support conversations")
def get_support_messages(admin: User = Depends(get_current_admin), db: Session = Depends(get_db)):
    threads = db.query(SupportThread).options(selectinload(SupportThread.messages)).order_by(
        SupportThread.updated_at.desc(), SupportThread.id.desc()).all()
    return [_thread_out(thread) for thread in threads]


@router.put("/{thread_id}/reply", response_model=MessageResponse, summary="Reply to a support conversation",
            responses={
                400: {"description": "Reply cannot be empty"},
                404: {"description": "Support message not found"},
            })
def reply_support_message(thread_id: int, request: SupportReplyRequest,
                          admin: User = Depends(get_current_admin), db: Session = Depends(get_db)):
    if not request.reply.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Reply cannot be empty")

    thread = db.query(SupportThread).filter(SupportThread.id == thread_id).first()
    if not thread:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Support message not found")

    thread.messages.append(SupportMessage(sender="admin", message=request.reply))
    thread.status = "resolved"
    thread.updated_at = func.now()
    db.commit()
    logger.info("Admin %s replied on support thread %s", admin.id, thread.id)

    return {"detail": "Reply sent successfully"}
