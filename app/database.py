import sqlalchemy as sa
from sqlalchemy.orm import sessionmaker, declarative_base
import os

from dotenv import load_dotenv
load_dotenv()

DATABASE_URL = os.getenv("DATABASE", "sqlite:///./feedvault.db")

if DATABASE_URL.startswith("sqlite"):
    db = sa.create_engine(DATABASE_URL, connect_args={"check_same_thread": False})
else:
    db = sa.create_engine(DATABASE_URL, pool_pre_ping=True)

SessionLocal = sessionmaker(bind=db, autocommit=False, autoflush=False, expire_on_commit=False)

Base = declarative_base()

def get_db():
    database = SessionLocal()
    try:
        yield database
    finally:
        database.close()
