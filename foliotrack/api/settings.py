import os
from typing import List

from dotenv import load_dotenv

load_dotenv()

# Dashboard origins, comma-separated; defaults to the local Vite server.
_origins_env = os.getenv("FRONTEND_ORIGINS") or os.getenv("FRONTEND_ORIGIN")
if _origins_env:
    CORS_ORIGINS: List[str] = [origin.strip() for origin in _origins_env.split(",") if origin.strip()]
else:
    CORS_ORIGINS = ["http://localhost:5173"]

# Refresh derived series on read when they are stale.
AUTO_REFRESH = os.getenv("FOLIO_AUTO_REFRESH", "1") == "1"
