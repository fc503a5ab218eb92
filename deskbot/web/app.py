"""
FastAPI Web Application - Deskbot Dashboard
============================================

Read-only view of what the bot process has stored: orders with their
summary, and which chats are currently handled by a human.

ARCHITECTURAL DECISION:
- The dashboard never writes the JSON documents; the bot process owns them
- Every request re-reads the files, so the page is always current without IPC
"""

import html
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import BackgroundTasks, Depends, FastAPI, HTTPException
from fastapi.responses import FileResponse, HTMLResponse

from ..application.cleanup import CleanupScheduler
from ..domain.errors import BackendError, NotFoundError
from ..domain.models import Mode, OrderStatus
from ..domain.order_input import format_date, format_price
from ..infrastructure.config import StorageSettings, get_settings
from ..infrastructure.exporter import OrderExporter
from ..infrastructure.persistence import JsonFileStore, OrderLedger, SessionStore

logger = logging.getLogger(__name__)

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def get_storage() -> StorageSettings:
    return get_settings().storage


def _ledger(storage: StorageSettings) -> OrderLedger:
    return OrderLedger(JsonFileStore(storage.orders_file))


def _sessions(storage: StorageSettings) -> SessionStore:
    return SessionStore(JsonFileStore(storage.sessions_file))


# ── Lifespan ───────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(app: FastAPI):
    storage = get_storage()
    logger.info("Dashboard ready", extra={"meta": {"data_dir": storage.data_dir}})
    yield


app = FastAPI(title="Deskbot", description="WhatsApp Customer Service Dashboard", lifespan=lifespan)


# ══════════════════════════════════════════════════════════════════
#  PAGE RENDERING
# ══════════════════════════════════════════════════════════════════

SHARED_CSS = """
    :root {
        --bg-dark: #0a0a14;
        --bg-card: rgba(255,255,255,0.035);
        --border: rgba(255,255,255,0.07);
        --text: #e2e8f0;
        --text-muted: #64748b;
        --accent-1: #7c3aed;
        --accent-2: #06b6d4;
    }

    * { margin: 0; padding: 0; box-sizing: border-box; }

    body {
        font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', sans-serif;
        background: var(--bg-dark);
        min-height: 100vh;
        color: var(--text);
    }

    .container { max-width: 1400px; margin: 0 auto; padding: 24px; }

    .card {
        background: var(--bg-card);
        border: 1px solid var(--border);
        border-radius: 16px;
        padding: 24px;
        margin-bottom: 24px;
    }

    .stats { display: grid; grid-template-columns: repeat(auto-fit, minmax(160px, 1fr)); gap: 16px; margin-bottom: 24px; }
    .stat-value { font-size: 28px; font-weight: 700; }
    .stat-label { font-size: 12px; color: var(--text-muted); text-transform: uppercase; letter-spacing: 0.4px; }

    .badge {
        padding: 4px 10px;
        border-radius: 6px;
        font-size: 10px;
        font-weight: 600;
        text-transform: uppercase;
    }
    .badge.todo        { background: rgba(251,191,36,0.15); color: #fbbf24; }
    .badge.on-progress { background: rgba(6,182,212,0.15); color: #22d3ee; }
    .badge.done        { background: rgba(52,211,153,0.15); color: #34d399; }
    .badge.canceled    { background: rgba(248,113,113,0.15); color: #f87171; }

    table { width: 100%; border-collapse: collapse; font-size: 14px; }
    th { text-align: left; color: var(--text-muted); font-weight: 500; padding: 10px; border-bottom: 1px solid var(--border); }
    td { padding: 10px; border-bottom: 1px solid var(--border); vertical-align: top; }

    .btn {
        background: linear-gradient(135deg, #7c3aed 0%, #06b6d4 100%);
        color: #fff;
        padding: 10px 22px;
        border-radius: 10px;
        font-weight: 600;
        font-size: 14px;
        text-decoration: none;
    }

    .empty-state { color: var(--text-muted); padding: 20px; text-align: center; }

    code {
        background: rgba(255,255,255,0.06);
        padding: 2px 7px;
        border-radius: 5px;
        font-size: 13px;
    }
"""


def render_dashboard(orders: list, summary: dict, human_sessions: list) -> str:
    """Render the overview page."""

    stat_cards = f"""
        <div class="card"><div class="stat-value">{summary['total']}</div><div class="stat-label">Orders</div></div>
        <div class="card"><div class="stat-value">{format_price(summary['revenue'])}</div><div class="stat-label">Revenue</div></div>"""
    for status in OrderStatus:
        stat_cards += f"""
        <div class="card"><div class="stat-value">{summary['by_status'].get(status.value, 0)}</div><div class="stat-label">{status.value}</div></div>"""

    table_rows = ""
    for o in orders:
        badge_cls = o.status.value.replace(" ", "-")
        table_rows += f"""
        <tr>
            <td><code>{o.id}</code></td>
            <td><strong>{html.escape(o.orderer_name)}</strong></td>
            <td>{format_price(o.price)}</td>
            <td>{html.escape(o.details)}</td>
            <td>{html.escape(o.work)}</td>
            <td><span class="badge {badge_cls}">{o.status.value}</span></td>
            <td>{format_date(o.time, with_time=True)}</td>
            <td>{format_date(o.deadline)}</td>
        </tr>"""
    if not table_rows:
        table_rows = '<tr><td colspan="8" class="empty-state">Belum ada order.</td></tr>'

    human_rows = "".join(f"<li><code>{html.escape(sender)}</code></li>" for sender in human_sessions)
    human_html = f"<ul>{human_rows}</ul>" if human_rows else '<div class="empty-state">Tidak ada user di mode human.</div>'

    return f"""<!DOCTYPE html>
<html lang="id">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Dashboard - Deskbot</title>
    <style>{SHARED_CSS}</style>
</head>
<body>
<div class="container">
    <header class="card" style="display:flex; justify-content:space-between; align-items:center;">
        <h1>Deskbot</h1>
        <a class="btn" href="/api/orders/export">Export Excel</a>
    </header>

    <div class="stats">{stat_cards}
    </div>

    <div class="card">
        <h2 style="margin-bottom:16px;">Orders</h2>
        <table>
            <thead>
                <tr><th>ID</th><th>Pemesan</th><th>Harga</th><th>Detail</th><th>Pekerjaan</th><th>Status</th><th>Dibuat</th><th>Deadline</th></tr>
            </thead>
            <tbody>{table_rows}
            </tbody>
        </table>
    </div>

    <div class="card">
        <h2 style="margin-bottom:16px;">Chat di mode human</h2>
        {human_html}
    </div>
</div>
</body>
</html>"""


# ── Dashboard ──────────────────────────────────────────────────

@app.get("/", response_class=HTMLResponse)
async def dashboard(storage: StorageSettings = Depends(get_storage)):
    ledger = _ledger(storage)
    return render_dashboard(ledger.all(), ledger.summary(), _sessions(storage).human_sessions())


# ── API Endpoints ──────────────────────────────────────────────

@app.get("/api/health")
async def api_health(storage: StorageSettings = Depends(get_storage)):
    sessions = _sessions(storage)
    return {
        "status": "ok",
        "orders": len(_ledger(storage).all()),
        "sessions": len(sessions.all()),
        "human": len(sessions.human_sessions()),
    }


@app.get("/api/orders")
async def api_list_orders(storage: StorageSettings = Depends(get_storage)):
    ledger = _ledger(storage)
    return {"orders": [o.to_dict() for o in ledger.all()], "summary": ledger.summary()}


# Registered before /api/orders/{order_id} so "export" is not taken for an ID
@app.get("/api/orders/export")
async def api_export_orders(background_tasks: BackgroundTasks, storage: StorageSettings = Depends(get_storage)):
    ledger = _ledger(storage)
    try:
        result = OrderExporter(storage.export_dir).export(ledger.all(), ledger.summary())
    except BackendError as e:
        logger.error("Dashboard export failed", extra={"meta": {"error": str(e)}})
        raise HTTPException(status_code=500, detail=str(e))

    background_tasks.add_task(CleanupScheduler.remove, result.filepath)
    return FileResponse(result.filepath, filename=result.filename, media_type=XLSX_MEDIA_TYPE)


@app.get("/api/orders/{order_id}")
async def api_get_order(order_id: str, storage: StorageSettings = Depends(get_storage)):
    try:
        return _ledger(storage).get(order_id).to_dict()
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@app.get("/api/sessions")
async def api_list_sessions(mode: Optional[str] = None, storage: StorageSettings = Depends(get_storage)):
    wanted = None
    if mode:
        try:
            wanted = Mode(mode.strip().lower())
        except ValueError:
            raise HTTPException(status_code=400, detail=f"Unknown mode: {mode}")

    return {
        "sessions": [
            {"id": sender, "mode": s.mode.value, "greeted": s.greeted, "memory": len(s.memory)}
            for sender, s in _sessions(storage).all().items()
            if wanted is None or s.mode is wanted
        ]
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="127.0.0.1", port=8000)
