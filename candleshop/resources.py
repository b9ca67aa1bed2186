from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional


def resolve_asset_path(name: str) -> Path:
    base_path = Path(getattr(sys, "_MEIPASS", Path(__file__).resolve().parent.parent))
    candidate = base_path / name
    if candidate.exists():
        return candidate
    return Path(__file__).resolve().parent / name


def get_invoice_logo_path(configured: str) -> Optional[Path]:
    """Locate the logo configured for invoices, either absolute or bundled."""
    cleaned = (configured or "").strip()
    if not cleaned:
        return None

    direct = Path(cleaned).expanduser()
    if direct.is_absolute():
        return direct if direct.is_file() else None

    candidate = resolve_asset_path(cleaned)
    return candidate if candidate.is_file() else None
