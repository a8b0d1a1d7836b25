import logging
import os

from app.classroom import create_app

logging.basicConfig(
    level=(os.environ.get("LOG_LEVEL") or "INFO").strip().upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = create_app()
