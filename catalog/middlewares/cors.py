from starlette.middleware.cors import CORSMiddleware

from catalog.config import config


def setup_cors(app):
    # Development origins
    dev_origins = [
        "http://localhost:5173",
        "http://127.0.0.1:5173",
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    # Additional origins from the environment
    env_origins = [
        origin.strip() for origin in config.ALLOWED_ORIGINS.split(",") if origin.strip()
    ]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=sorted(set(dev_origins + env_origins)),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        max_age=3600,
    )
