from fastapi import FastAPI

from profile_photos.database import Base, engine
from profile_photos.routers.photos import router as photos_router

# Ensure database tables exist
Base.metadata.create_all(bind=engine)

app = FastAPI(title="Profile Photos")

app.include_router(photos_router)

# Reminder: JWT_SECRET_KEY must be set in the environment for token auth,
# and CLOUDINARY_* (or IMAGE_STORE_BACKEND=filesystem) for uploads
