from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from config import LOCAL_DB_URL


def make_engine(url: str = LOCAL_DB_URL):
    return create_engine(url, connect_args={"check_same_thread": False} if url.startswith("sqlite") else {})


engine = make_engine()
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
Base = declarative_base()


def init_db(BaseModel, bind=None):
    BaseModel.metadata.create_all(bind=bind or engine)
