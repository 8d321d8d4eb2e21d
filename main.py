# =============================================================================
# 🚀 QR Studio – Hauptapplikation (main.py)
# =============================================================================

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Dict, List

from dotenv import load_dotenv
from fastapi import FastAPI

# -------------------------------------------------------------------------
# 1️⃣ .env laden (muss ganz oben sein!)
# -------------------------------------------------------------------------
env_path = Path(__file__).resolve().parent / ".env"
load_dotenv(dotenv_path=env_path)

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("qr_studio")

from database import engine  # noqa: E402
from routes import api, batch, history, templates  # noqa: E402
from utils.app_state_tables import ensure_app_state_table  # noqa: E402

# -------------------------------------------------------------------------
# 2️⃣ FastAPI App
# -------------------------------------------------------------------------
app = FastAPI(title="QR Studio", version="1.0")
ensure_app_state_table(engine)

# -------------------------------------------------------------------------
# 3️⃣ Routen
# -------------------------------------------------------------------------
app.include_router(api.router)
app.include_router(history.router)
app.include_router(templates.router)
app.include_router(batch.router)


# -------------------------------------------------------------------------
# 4️⃣ Health & Debug
# -------------------------------------------------------------------------
@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.get("/debug/routes")
def debug_routes() -> List[Dict[str, str]]:
    return [{"path": r.path, "name": r.name} for r in app.routes]


logger.info("✅ QR Studio gestartet")
