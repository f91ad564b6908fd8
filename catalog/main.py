import logging
from logging.config import dictConfig

from fastapi import FastAPI

from catalog.config import LogConfig
from catalog.controllers import auth, courses, enrollments, ratings
from catalog.database import Base, SessionLocal, engine
from catalog.exceptions import CatalogError, catalog_exception_handler
from catalog.middlewares.cors import setup_cors
from catalog.utils import create_admin_user

dictConfig(LogConfig().model_dump())
logger = logging.getLogger("catalog")

app = FastAPI(title="Course Catalog", version="1.0.0")

setup_cors(app)
Base.metadata.create_all(bind=engine)
app.add_exception_handler(CatalogError, catalog_exception_handler)
app.include_router(auth.router)
app.include_router(courses.router)
app.include_router(enrollments.router)
app.include_router(ratings.router)


@app.on_event("startup")
async def startup_event():
    """Initialize application data on startup"""
    db = SessionLocal()
    try:
        # Create admin user if it doesn't exist
        create_admin_user(db)
    finally:
        db.close()


@app.get("/")
def read_root():
    return {"message": "Welcome to the Course Catalog API"}
