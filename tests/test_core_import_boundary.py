from __future__ import annotations

from pathlib import Path
import re

_FORBIDDEN = re.compile(r"\b(?:from|import)\s+(psycopg|yfinance|pandas|fastapi|loguru|dotenv)\b")


def test_core_is_free_of_adapter_libraries() -> None:
    repo_root = Path(__file__).resolve().parents[1]
    offenders: list[str] = []

    for path in (repo_root / "foliotrack" / "core").rglob("*.py"):
        rel = path.relative_to(repo_root).as_posix()
        text = path.read_text(encoding="utf-8")
        if _FORBIDDEN.search(text):
            offenders.append(rel)

    assert offenders == [], (
        "Database, market data and web libraries belong in foliotrack/adapters "
        f"or foliotrack/api. Offenders: {', '.join(offenders)}"
    )
