import os
import unittest
import uuid

os.environ["STORE_BACKEND"] = "memory"
os.environ["ORACLE_PROVIDER"] = "NONE"

from fastapi.testclient import TestClient  # noqa: E402

from novatrade.api.routes import tick_payload  # noqa: E402
from novatrade.main import app  # noqa: E402
from novatrade.state import engine  # noqa: E402


def unique(prefix):
    return f"{prefix}-{uuid.uuid4().hex[:6]}"


class TestApi(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        # no `with` block: startup hooks (background loops) stay off
        cls.client = TestClient(app)
        cls.admin = cls.client.post("/users/login", json={"username": unique("root"), "is_admin": True}).json()
        resp = cls.client.post("/session/override", params={"actor_id": cls.admin["id"], "enabled": True})
        assert resp.status_code == 200, resp.text

    def login(self):
        resp = self.client.post("/users/login", json={"username": unique("trader")})
        self.assertEqual(resp.status_code, 200)
        return resp.json()

    def test_health(self):
        body = self.client.get("/health").json()
        self.assertEqual(body["status"], "ok")
        self.assertEqual(body["oracle_loaded"], "NullOracle")

    def test_market(self):
        body = self.client.get("/market").json()
        self.assertTrue(body["is_open"])
        self.assertEqual(len(body["stocks"]), 50)
        self.assertIn("history", body["stocks"][0])

        light = self.client.get("/market", params={"history": False}).json()
        self.assertNotIn("history", light["stocks"][0])

    def test_unknown_symbol(self):
        resp = self.client.get("/market/NOPE")
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.json()["error"], "UnknownSymbol")

    def test_buy_then_sell(self):
        user = self.login()
        self.assertEqual(user["balance"], 100000.0)

        resp = self.client.post(
            f"/users/{user['id']}/buy",
            json={"symbol": "TCS", "quantity": 2, "stop_loss": 1.0, "take_profit": 1000000.0},
        )
        self.assertEqual(resp.status_code, 200, resp.text)
        body = resp.json()
        self.assertEqual(body["trade"]["type"], "BUY")
        self.assertEqual(body["user"]["portfolio"]["TCS"]["quantity"], 2)
        self.assertEqual(len(body["user"]["active_orders"]), 2)

        resp = self.client.post(f"/users/{user['id']}/sell", json={"symbol": "TCS", "quantity": 2})
        self.assertEqual(resp.status_code, 200, resp.text)
        body = resp.json()
        self.assertIn("profit_loss", body["trade"])
        self.assertEqual(body["user"]["portfolio"], {})
        self.assertEqual(body["user"]["active_orders"], [])

        analytics = self.client.get(f"/users/{user['id']}/analytics").json()
        self.assertEqual(analytics["closed_trades"], 1)

    def test_trading_errors(self):
        user = self.login()

        resp = self.client.post(f"/users/{user['id']}/buy", json={"symbol": "TCS", "quantity": 1_000_000})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["error"], "InsufficientFunds")

        resp = self.client.post(f"/users/{user['id']}/sell", json={"symbol": "TCS", "quantity": 1})
        self.assertEqual(resp.json()["error"], "InsufficientPosition")

        resp = self.client.post(f"/users/{user['id']}/buy", json={"symbol": "TCS", "quantity": 0})
        self.assertEqual(resp.status_code, 422)

    def test_cancel_and_wishlist(self):
        user = self.login()
        body = self.client.post(
            f"/users/{user['id']}/buy", json={"symbol": "INFY", "quantity": 1, "stop_loss": 1.0}
        ).json()
        order_id = body["user"]["active_orders"][0]["id"]

        resp = self.client.delete(f"/users/{user['id']}/orders/{order_id}")
        self.assertEqual(resp.json()["cancelled"]["id"], order_id)
        self.assertEqual(self.client.delete(f"/users/{user['id']}/orders/{order_id}").status_code, 404)

        wishlist = self.client.post(f"/users/{user['id']}/wishlist/infy").json()["wishlist"]
        self.assertEqual(wishlist, ["INFY"])

    def test_admin_routes_need_admin(self):
        user = self.login()
        resp = self.client.get("/admin/users", params={"actor_id": user["id"]})
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.json()["error"], "PermissionDenied")

    def test_admin_price_and_logs(self):
        resp = self.client.post("/admin/prices/WIPRO", json={"actor_id": self.admin["id"], "price": 500.0})
        self.assertEqual(resp.json()["price"], 500.0)

        audit = self.client.get("/admin/logs", params={"actor_id": self.admin["id"]}).json()
        self.assertIn("SET_PRICE", [r["action"] for r in audit["records"]])

        process = self.client.get(
            "/admin/logs", params={"actor_id": self.admin["id"], "source": "process", "count": 5}
        ).json()
        self.assertLessEqual(len(process["records"]), 5)

    def test_ban_user(self):
        user = self.login()
        resp = self.client.patch(
            f"/admin/users/{user['id']}/status", json={"actor_id": self.admin["id"], "status": "BANNED"}
        )
        self.assertEqual(resp.json()["status"], "BANNED")

        resp = self.client.post("/users/login", json={"username": user["username"]})
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.json()["error"], "AccountSuspended")

    def test_tickets(self):
        user = self.login()
        created = self.client.post(
            f"/users/{user['id']}/tickets", json={"subject": "Help", "message": "Where is my order?"}
        ).json()
        self.assertEqual(created["status"], "OPEN")

        resolved = self.client.post(
            f"/admin/tickets/{created['id']}/resolve", params={"actor_id": self.admin["id"]}
        ).json()
        self.assertEqual(resolved["status"], "RESOLVED")

        mine = self.client.get(f"/users/{user['id']}/tickets").json()
        self.assertEqual([t["status"] for t in mine], ["RESOLVED"])

        missing = self.client.post("/admin/tickets/TKT-missing/resolve", params={"actor_id": self.admin["id"]})
        self.assertEqual(missing.status_code, 404)

    def test_chat(self):
        user = self.login()
        posted = self.client.post("/chat", json={"user_id": user["id"], "text": "TCS to the moon"}).json()
        self.assertEqual(posted["sender"], user["username"])

        history = self.client.get("/chat").json()
        self.assertEqual(history[-1]["id"], posted["id"])

    def test_admin_sync_with_null_oracle(self):
        body = self.client.post("/admin/sync", params={"actor_id": self.admin["id"]}).json()
        self.assertEqual(body["requested"], 50)
        self.assertEqual(body["applied"], [])

    def test_tick_feed_unsubscribes_on_close(self):
        before = len(engine._listeners)
        with self.client.websocket_connect("/ws/ticks"):
            self.assertEqual(len(engine._listeners), before + 1)
        # closing the socket releases the listener even though no tick arrived
        self.assertEqual(len(engine._listeners), before)

    def test_tick_payload(self):
        event = engine.step()
        payload = tick_payload(event)

        self.assertEqual(len(payload["stocks"]), 50)
        self.assertIn("last", payload["stocks"][0])
        self.assertNotIn("history", payload["stocks"][0])


if __name__ == "__main__":
    unittest.main()
