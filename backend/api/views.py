import logging
import uuid
from dataclasses import asdict

from django.conf import settings
from rest_framework import status
from rest_framework.views import APIView
from rest_framework.response import Response

from .models import Trade
from .serializers import TradeSerializer
from analytics.coach import coaching_message, mock_analysis
from analytics.learning import (
    advance,
    dumps_state,
    initial_state,
    learned_concept_names,
    learning_path,
    loads_state,
    trading_iq,
)
from analytics.parser import parse_trade_file
from analytics.risk_rules import assess_risk

logger = logging.getLogger(__name__)


def _requested_batch_id(request):
    # no explicit batch: the session's latest upload, else every stored trade
    return request.query_params.get("batch_id") or request.session.get("latest_batch_id")


def _trades_for_batch(batch_id):
    qs = Trade.objects.all().order_by("purchase_time", "id")
    if batch_id:
        qs = qs.filter(batch_id=batch_id)
    return qs


def _load_learning_state(request):
    return loads_state(request.session.get(settings.LEARNING_SESSION_KEY))


def _save_learning_state(request, state):
    request.session[settings.LEARNING_SESSION_KEY] = dumps_state(state)


def _learning_payload(state) -> dict:
    return {
        "state": {cid: asdict(progress) for cid, progress in state.items()},
        "learned_concepts": learned_concept_names(state),
        "trading_iq": trading_iq(state),
        "learning_path": learning_path(state),
    }


class UploadTradesAPIView(APIView):
    """Upload a CSV/JSON/Excel file and persist trades to DB."""

    def post(self, request):
        f = request.FILES.get("file")
        if not f:
            return Response({"error": "Missing file"}, status=status.HTTP_400_BAD_REQUEST)

        try:
            df = parse_trade_file(f)
        except Exception as e:
            logger.info("Rejected trade upload %r: %s", getattr(f, "name", ""), e)
            return Response({"error": str(e)}, status=status.HTTP_400_BAD_REQUEST)

        batch_id = uuid.uuid4().hex[:12]

        objs = []
        for row in df.to_dict(orient="records"):
            objs.append(Trade(
                transaction_id=str(row["transaction_id"]),
                contract_id=int(row["contract_id"]),
                purchase_time=int(row["purchase_time"]),
                sell_time=int(row["sell_time"]),
                buy_price=float(row["buy_price"]),
                sell_price=float(row["sell_price"]),
                profit=float(row["profit"]),
                underlying_symbol=str(row["underlying_symbol"]),
                underlying_name=str(row["underlying_name"]),
                contract_type=str(row["contract_type"]),
                duration=str(row["duration"]),
                payout=float(row["payout"]),
                trend=str(row["trend"]),
                volatility=str(row["volatility"]),
                context_description=str(row["description"]),
                batch_id=batch_id,
            ))
        Trade.objects.bulk_create(objs, batch_size=2000)

        request.session["latest_batch_id"] = batch_id
        logger.info("Imported %d trades (batch %s)", len(objs), batch_id)
        return Response({"batch_id": batch_id, "inserted": len(objs)})

class TradesListAPIView(APIView):
    """List trades chronologically.

    Filters by `batch_id`, falling back to the session's latest upload. A
    session that never uploaded sees trades from every batch.
    """

    def get(self, request):
        batch_id = _requested_batch_id(request)
        qs = _trades_for_batch(batch_id)

        data = TradeSerializer(qs[:5000], many=True).data  # protect UI
        return Response({"count": qs.count(), "results": data})

class RiskScoreAPIView(APIView):
    """Risk score of the most recent trades.

    Without `batch_id` the session's latest upload is scored; if the session
    has none, the last 10 trades across all uploads are scored together.
    """

    def get(self, request):
        batch_id = _requested_batch_id(request)
        qs = _trades_for_batch(batch_id)

        if not qs.exists():
            return Response({"error": "No trades found. Upload first."}, status=status.HTTP_400_BAD_REQUEST)

        result = assess_risk([t.to_record() for t in qs])
        payload = asdict(result)
        payload["batch_id"] = batch_id
        return Response(payload)

class AnalyzeTradeAPIView(APIView):
    """Review one trade and advance the session's learning state.

    The client is expected to wait for a response before analyzing the next
    trade, so each update applies to the state the previous one saved.

    The trade and the risk history come from `batch_id`, or the session's
    latest upload. A session without either scores trades from every upload
    merged together.
    """

    def post(self, request, transaction_id):
        batch_id = _requested_batch_id(request)
        qs = _trades_for_batch(batch_id)
        trade = qs.filter(transaction_id=transaction_id).last()
        if trade is None:
            return Response({"error": f"Trade {transaction_id} not found."}, status=status.HTTP_404_NOT_FOUND)

        analysis = mock_analysis(trade.to_record())
        state = advance(_load_learning_state(request), analysis.concept_id)
        _save_learning_state(request, state)
        logger.info("Analyzed trade %s -> concept %s", transaction_id, analysis.concept_id)

        learning = _learning_payload(state)
        risk_score = assess_risk([t.to_record() for t in qs]).score
        return Response({
            "trade": TradeSerializer(trade).data,
            "analysis": asdict(analysis),
            "learning": learning,
            "risk_score": risk_score,
            "coach": coaching_message(risk_score, learning["trading_iq"]),
        })

class LearningStateAPIView(APIView):
    """Current learning progress of the session; DELETE starts over."""

    def get(self, request):
        return Response(_learning_payload(_load_learning_state(request)))

    def delete(self, request):
        state = initial_state()
        _save_learning_state(request, state)
        return Response(_learning_payload(state))
