from __future__ import annotations

from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI

from ingestion.settings import reset_settings_cache

# 프로젝트 루트의 .env 파일 명시적 로딩
project_root = Path(__file__).parent.parent
env_path = project_root / ".env"

if env_path.exists():
    load_dotenv(env_path)
    reset_settings_cache()

from ingestion.tasks.ingest import ThrottleHolder  # noqa: E402

from .routes import router  # noqa: E402

app = FastAPI(title="Feed Ingestion API", version="0.1.0")
# fetch spacing shared by every run this process serves
app.state.throttles = ThrottleHolder()

app.include_router(router)


@app.get("/healthz", tags=["system"])
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}
