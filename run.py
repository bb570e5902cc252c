"""Run the API with uvicorn for local development."""
import os

import uvicorn
from dotenv import load_dotenv, find_dotenv

env_path = find_dotenv()
if env_path:
    load_dotenv(env_path, override=False)


def _create_dev_schema():
    """Create tables directly for the default SQLite dev database."""
    from pushit.db import Base, engine

    if engine.dialect.name == "sqlite":
        Base.metadata.create_all(bind=engine)


if __name__ == "__main__":
    _create_dev_schema()
    uvicorn.run(
        "pushit.main:app",
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "8000")),
        reload=os.getenv("ENVIRONMENT", "development") == "development",
    )
