import os

from dotenv import load_dotenv
load_dotenv()

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from routers import auth, feed, payments, profile, admin, support
from models import (Blacklisted_tokens_model, device_model, download_model, feed_item_model,
                    payment_model, support_model, user_model)
from database import Base, db
from services.file_storage import images_dir
from utils.log import configure_logging

configure_logging()

Base.metadata.create_all(bind=db)

app = FastAPI(title="FeedVault")

app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in os.getenv("FRONTEND_URL", "http://localhost:3000").split(",")],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["Content-Type", "Authorization", "X-Device-Token"],
)

app.include_router(auth.router, prefix="/api/auth", tags=["Auth"])
app.include_router(feed.router, prefix="/api/feed", tags=["Feed"])
app.include_router(payments.router, prefix="/api/payments", tags=["Payments"])
app.include_router(profile.router, prefix="/api/profile", tags=["Profile"])
app.include_router(admin.router, prefix="/api/admin", tags=["Admin"])
app.include_router(support.router, prefix="/api/support", tags=["Support"])

# thumbnails only, feed files are served through download tokens
app.mount("/uploads/images", StaticFiles(directory=images_dir()), name="images")

@app.get("/")
def read_root():
    return "Server is running"
