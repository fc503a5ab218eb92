import tempfile
import unittest
from pathlib import Path

from fastapi.testclient import TestClient

from deskbot.domain import Mode
from deskbot.infrastructure.config import StorageSettings
from deskbot.infrastructure.persistence import JsonFileStore, OrderLedger, SessionStore
from deskbot.web.app import app, get_storage


class TestDashboard(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        root = Path(self._tmp.name)
        self.storage = StorageSettings(
            data_dir=root / "data",
            export_dir=root / "exports",
            log_dir=root / "logs",
        )
        app.dependency_overrides[get_storage] = lambda: self.storage
        self.client = TestClient(app)

        ledger = OrderLedger(JsonFileStore(self.storage.orders_file))
        ledger.create("Jane", "250000", "Edit wedding video", "Video Editing", "2025-01-15")
        ledger.create("<b>Budi</b>", "150000", "Potong klip", "Short Video")

        sessions = SessionStore(JsonFileStore(self.storage.sessions_file))
        sessions.set_mode("62811@c.us", Mode.HUMAN)
        sessions.ensure("62822@c.us")

    def tearDown(self):
        app.dependency_overrides.clear()
        self._tmp.cleanup()

    def test_health_has_counts(self):
        r = self.client.get("/api/health")
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.json(), {"status": "ok", "orders": 2, "sessions": 2, "human": 1})

    def test_list_orders(self):
        data = self.client.get("/api/orders").json()
        self.assertEqual([o["id"] for o in data["orders"]], ["ORD-0001", "ORD-0002"])
        self.assertEqual(data["orders"][0]["ordererName"], "Jane")
        self.assertEqual(data["summary"]["revenue"], 400000)

    def test_get_order(self):
        r = self.client.get("/api/orders/ord-0002")
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.json()["price"], 150000)

    def test_unknown_order_is_404(self):
        r = self.client.get("/api/orders/ORD-0404")
        self.assertEqual(r.status_code, 404)
        self.assertIn("ORD-0404", r.json()["detail"])

    def test_sessions_filter(self):
        human = self.client.get("/api/sessions", params={"mode": "human"}).json()["sessions"]
        self.assertEqual([s["id"] for s in human], ["62811@c.us"])

        everyone = self.client.get("/api/sessions").json()["sessions"]
        self.assertEqual(len(everyone), 2)

        self.assertEqual(self.client.get("/api/sessions", params={"mode": "robot"}).status_code, 400)

    def test_dashboard_page_escapes_names(self):
        r = self.client.get("/")
        self.assertEqual(r.status_code, 200)
        self.assertIn("ORD-0001", r.text)
        self.assertIn("&lt;b&gt;Budi&lt;/b&gt;", r.text)
        self.assertIn("62811@c.us", r.text)

    def test_export_download_is_cleaned_up(self):
        r = self.client.get("/api/orders/export")

        self.assertEqual(r.status_code, 200)
        self.assertTrue(r.content.startswith(b"PK"))
        self.assertIn("orders_", r.headers["content-disposition"])
        self.assertEqual(list(self.storage.export_dir.glob("*.xlsx")), [])

    def test_dashboard_never_writes(self):
        before = self.storage.orders_file.read_text(encoding="utf-8")
        self.client.get("/")
        self.client.get("/api/orders")
        self.assertEqual(self.storage.orders_file.read_text(encoding="utf-8"), before)


if __name__ == "__main__":
    unittest.main()
