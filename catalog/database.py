from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from catalog.config import config

SQLALCHEMY_DATABASE_URL = config.DATABASE_URL

# SQLite connections are shared across the request threads
connect_args = {}
if SQLALCHEMY_DATABASE_URL.startswith("sqlite"):
    connect_args = {"check_same_thread": False}

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    echo=config.DATABASE_ECHO,
    connect_args=connect_args,
)

# Create a session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base model
Base = declarative_base()


# Dependency for getting the database session
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
