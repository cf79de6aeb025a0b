from django.conf import settings
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase
from django.urls import reverse
from rest_framework.test import APIClient

from analytics.learning import CONCEPTS
from .models import Trade
from .schemas import ANALYZE_RESPONSE_KEYS, LEARNING_RESPONSE_KEYS, RISK_RESPONSE_KEYS

TRADES_CSV = (
    b"transaction_id,purchase_time,sell_time,buy_price,sell_price,profit,contract_type,underlying_symbol,trend,volatility\n"
    b"t1,1000,1060,10,19.5,9.5,CALL,R_100,bullish,low\n"
    b"t2,2000,2060,10,0,-10,CALL,R_100,bearish,high\n"
    b"t3,2100,2160,25,0,-25,CALL,R_100,bearish,high\n"
)


class TradeApiTests(TestCase):
    def setUp(self):
        self.client = APIClient()

    def _upload(self, content=TRADES_CSV, name="trades.csv"):
        return self.client.post(
            reverse("api-upload"),
            {"file": SimpleUploadedFile(name, content)},
            format="multipart",
        )

    def test_upload_and_list(self):
        resp = self._upload()
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data["inserted"], 3)

        batch_id = resp.data["batch_id"]
        listing = self.client.get(reverse("api-trades"), {"batch_id": batch_id})
        self.assertEqual(listing.data["count"], 3)
        self.assertEqual([t["transaction_id"] for t in listing.data["results"]], ["t1", "t2", "t3"])

    def test_upload_rejects_bad_file(self):
        self.assertEqual(self.client.post(reverse("api-upload"), {}, format="multipart").status_code, 400)

        resp = self._upload(b"id,pnl\nt1,5\n")
        self.assertEqual(resp.status_code, 400)
        self.assertIn("Missing required columns", resp.data["error"])
        self.assertEqual(Trade.objects.count(), 0)

    def test_risk_requires_trades(self):
        resp = self.client.get(reverse("api-risk"))
        self.assertEqual(resp.status_code, 400)

    def test_risk_score(self):
        batch_id = self._upload().data["batch_id"]
        resp = self.client.get(reverse("api-risk"), {"batch_id": batch_id})

        self.assertEqual(resp.status_code, 200)
        for key in RISK_RESPONSE_KEYS:
            self.assertIn(key, resp.data)
        # martingale (25 >= 15 after a loss) +15, loss rate 2/3 +5, revenge (40s) +5
        self.assertEqual(resp.data["score"], 75)
        self.assertEqual(resp.data["level"], "HIGH")

    def test_defaults_to_latest_upload_of_session(self):
        self._upload()
        latest = self._upload(
            b"transaction_id,purchase_time,sell_time,buy_price,sell_price,profit,contract_type\n"
            b"w1,9000,9060,10,19.5,9.5,CALL\n"
        ).data["batch_id"]

        resp = self.client.get(reverse("api-risk"))
        self.assertEqual(resp.data["batch_id"], latest)
        self.assertEqual(resp.data["score"], 50)
        self.assertEqual(self.client.get(reverse("api-trades")).data["count"], 1)

        # a session that never uploaded sees every batch
        self.assertEqual(APIClient().get(reverse("api-trades")).data["count"], 4)


class LearningApiTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.batch_id = self.client.post(
            reverse("api-upload"),
            {"file": SimpleUploadedFile("trades.csv", TRADES_CSV)},
            format="multipart",
        ).data["batch_id"]

    def _analyze(self, transaction_id):
        url = reverse("api-analyze-trade", args=[transaction_id])
        return self.client.post(f"{url}?batch_id={self.batch_id}")

    def test_fresh_session_starts_locked(self):
        resp = self.client.get(reverse("api-learning"))

        for key in LEARNING_RESPONSE_KEYS:
            self.assertIn(key, resp.data)
        self.assertEqual(resp.data["learned_concepts"], [])
        self.assertEqual(resp.data["trading_iq"], 0)
        self.assertEqual(len(resp.data["state"]), len(CONCEPTS))

    def test_analyze_advances_learning_state(self):
        resp = self._analyze("t1")
        self.assertEqual(resp.status_code, 200)
        for key in ANALYZE_RESPONSE_KEYS:
            self.assertIn(key, resp.data)
        self.assertEqual(resp.data["analysis"]["verdict"], "WIN")
        self.assertEqual(resp.data["analysis"]["concept_id"], "risk_management")
        self.assertEqual(resp.data["learning"]["learned_concepts"], ["Risk Management"])
        self.assertEqual(resp.data["risk_score"], 75)

        self._analyze("t1")
        resp = self._analyze("t1")
        progress = resp.data["learning"]["state"]["risk_management"]
        self.assertEqual(progress, {"unlocked": True, "interactions": 3, "mastered": True})
        self.assertEqual(resp.data["learning"]["trading_iq"], 24)

        self.assertEqual(self.client.get(reverse("api-learning")).data["trading_iq"], 24)

    def test_big_stake_loss_teaches_psychology(self):
        resp = self._analyze("t3")
        self.assertEqual(resp.data["analysis"]["concept_id"], "psychology")
        self.assertEqual(resp.data["learning"]["learned_concepts"], ["Trading Psychology"])

    def test_unknown_trade(self):
        self.assertEqual(self._analyze("missing").status_code, 404)

    def test_corrupt_session_state_starts_over(self):
        session = self.client.session
        session[settings.LEARNING_SESSION_KEY] = "{not json"
        session.save()

        resp = self.client.get(reverse("api-learning"))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data["trading_iq"], 0)

    def test_reset(self):
        self._analyze("t2")
        resp = self.client.delete(reverse("api-learning"))
        self.assertEqual(resp.data["learned_concepts"], [])
        self.assertEqual(self.client.get(reverse("api-learning")).data["trading_iq"], 0)
