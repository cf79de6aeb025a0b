import io
import json

import pandas as pd
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import SimpleTestCase

from .coach import coaching_message, mock_analysis
from .features import add_features, recent_window, trades_frame
from .learning import (
    CONCEPTS,
    ConceptProgress,
    advance,
    dumps_state,
    initial_state,
    learned_concept_names,
    learning_path,
    loads_state,
    trading_iq,
)
from .parser import frame_to_trades, normalize_columns, parse_trade_file
from .recommendations import DEFAULT_RECOMMENDATIONS
from .risk_rules import assess_risk, compute_risk_score
from .trades import MarketContext, Trade


def make_trade(i, profit, buy_price=10.0, gap=3600, trend="bearish", contract_type="CALL"):
    """Trade number `i`, one hour apart by default so no quick re-entries."""
    purchase = 1_000_000 + i * gap
    return Trade(
        transaction_id=f"t{i}",
        purchase_time=purchase,
        sell_time=purchase + 60,
        buy_price=buy_price,
        sell_price=buy_price + profit if profit > 0 else 0.0,
        profit=profit,
        underlying_symbol="R_100",
        underlying_name="Volatility 100 Index",
        contract_type=contract_type,
        duration="1m",
        market_context=MarketContext(trend=trend, volatility="high"),
    )


class RiskScoreTests(SimpleTestCase):
    def test_empty_history_returns_baseline(self):
        self.assertEqual(compute_risk_score([]), 50)
        self.assertEqual(assess_risk([]).tips, [])

    def test_martingale_and_revenge_after_loss(self):
        trades = [
            {"profit": 5, "buy_price": 10, "purchase_time": 0, "sell_time": 60},
            {"profit": 5, "buy_price": 10, "purchase_time": 500, "sell_time": 560},
            {"profit": -10, "buy_price": 10, "purchase_time": 900, "sell_time": 1000},
            {"profit": -5, "buy_price": 16, "purchase_time": 1100, "sell_time": 1160},
        ]
        # loss rate 0.5 is not above 0.5: only martingale (+15) and revenge (+5)
        self.assertEqual(compute_risk_score(trades), 70)

    def test_two_loss_window_also_pays_loss_rate(self):
        trades = [
            {"profit": -10, "buy_price": 10, "sell_time": 1000},
            {"profit": -5, "buy_price": 16, "purchase_time": 1100},
        ]
        # martingale 15 + loss rate 1.0 (15) + revenge 5
        self.assertEqual(compute_risk_score(trades), 85)

    def test_high_loss_rate(self):
        profits = [-5, -5, 9, -5, -5, -5, 9, -5, -5, -5]
        trades = [make_trade(i, p) for i, p in enumerate(profits)]
        self.assertEqual(compute_risk_score(trades), 65)

    def test_moderate_loss_rate(self):
        profits = [-5, 9, -5, 9, -5, 9, -5, 9, -5, -5]
        trades = [make_trade(i, p) for i, p in enumerate(profits)]
        self.assertEqual(compute_risk_score(trades), 55)

    def test_oversized_stake_counts_once(self):
        stakes = [10] * 8 + [100, 100]
        trades = [make_trade(i, 5, buy_price=s) for i, s in enumerate(stakes)]
        # avg 28, max 100 > 84
        self.assertEqual(compute_risk_score(trades), 60)

    def test_martingale_hits_accumulate(self):
        trades = [
            make_trade(0, -10, buy_price=10),
            make_trade(1, -20, buy_price=20),
            make_trade(2, 30, buy_price=40),
            make_trade(3, 5, buy_price=10),
        ]
        # 2 martingale hits, loss rate 0.5 (no penalty), max 40 > 20*3 is false
        self.assertEqual(compute_risk_score(trades), 80)

    def test_only_last_ten_trades_count(self):
        tail = [make_trade(i, 5 if i % 3 else -5) for i in range(100, 110)]
        older = [make_trade(i, -50, buy_price=500, gap=10) for i in range(5)]
        self.assertEqual(compute_risk_score(older + tail), compute_risk_score(tail))

    def test_score_is_clamped(self):
        trades = [make_trade(i, -(2 ** i), buy_price=2 ** i, gap=10) for i in range(10)]
        self.assertEqual(compute_risk_score(trades), 100)

    def test_dataframe_input_matches_records(self):
        trades = [make_trade(i, p) for i, p in enumerate([-5, -5, 9, -5])]
        self.assertEqual(compute_risk_score(trades_frame(trades)), compute_risk_score(trades))

    def test_assessment_explains_fired_rules(self):
        trades = [make_trade(0, -10, buy_price=10), make_trade(1, 5, buy_price=20)]
        result = assess_risk(trades)
        metrics = {s["metric"]: s["value"] for s in result.signals}

        self.assertEqual(result.score, 65)
        self.assertEqual(result.level, "HIGH")
        self.assertEqual(metrics["martingale_hits"], 1)
        self.assertEqual(metrics["window_size"], 2)
        self.assertIn(DEFAULT_RECOMMENDATIONS["martingale"][0], result.tips)
        self.assertNotIn(DEFAULT_RECOMMENDATIONS["revenge_trading"][0], result.tips)


class FeatureTests(SimpleTestCase):
    def test_window_keeps_chronological_tail(self):
        df = trades_frame([make_trade(i, 1) for i in range(15)])
        window = recent_window(df)
        self.assertEqual(window["transaction_id"].tolist(), [f"t{i}" for i in range(5, 15)])

    def test_first_row_has_no_predecessor(self):
        d = add_features(trades_frame([make_trade(0, -5), make_trade(1, 5, gap=100)]))
        self.assertFalse(bool(d.loc[0, "after_loss"]))
        self.assertTrue(bool(d.loc[1, "after_loss"]))
        self.assertEqual(int(d.loc[1, "reentry_gap"]), 40)


class LearningProgressionTests(SimpleTestCase):
    def test_initial_state_covers_catalog(self):
        state = initial_state(CONCEPTS)
        self.assertEqual(set(state), {c.id for c in CONCEPTS})
        self.assertTrue(all(p == ConceptProgress() for p in state.values()))

    def test_concept_reaches_mastery_on_third_interaction(self):
        state = advance(initial_state(), "risk_management")
        self.assertEqual(state["risk_management"], ConceptProgress(unlocked=True, interactions=1, mastered=False))

        state = advance(advance(state, "risk_management"), "risk_management")
        self.assertEqual(state["risk_management"], ConceptProgress(unlocked=True, interactions=3, mastered=True))

        state = advance(state, "risk_management")
        self.assertEqual(state["risk_management"], ConceptProgress(unlocked=True, interactions=4, mastered=True))

    def test_advance_does_not_mutate_input(self):
        state = initial_state()
        before = dict(state)
        new_state = advance(state, "timing")

        self.assertEqual(state, before)
        self.assertEqual(state["timing"], ConceptProgress())
        self.assertIsNot(new_state, state)
        self.assertEqual(new_state["volatility"], state["volatility"])

    def test_unknown_concept_is_added(self):
        state = advance(initial_state(), "market_psychology")
        self.assertEqual(state["market_psychology"].interactions, 1)
        self.assertEqual(len(state), len(CONCEPTS) + 1)

    def test_learned_names(self):
        self.assertEqual(learned_concept_names(initial_state()), [])

        state = initial_state()
        for cid in ["trend_analysis", "psychology", "trend_analysis", "trend_analysis"]:
            state = advance(state, cid)
        self.assertCountEqual(learned_concept_names(state), ["Trend Analysis", "Trading Psychology"])

    def test_learned_names_fall_back_to_raw_id(self):
        state = advance(initial_state(), "technical_indicators")
        self.assertEqual(learned_concept_names(state), ["technical_indicators"])

    def test_trading_iq(self):
        state = initial_state()
        self.assertEqual(trading_iq(state), 0)

        state = advance(state, "timing")
        self.assertEqual(trading_iq(state), 8)

        state = advance(advance(state, "timing"), "timing")
        self.assertEqual(trading_iq(state), 24)

    def test_trading_iq_monotonic_and_capped(self):
        state = initial_state()
        last = trading_iq(state)
        ids = [c.id for c in CONCEPTS] + ["unknown_concept"]
        for n in range(60):
            state = advance(state, ids[n % len(ids)])
            iq = trading_iq(state)
            self.assertGreaterEqual(iq, last)
            self.assertLessEqual(iq, 100)
            last = iq
        self.assertEqual(last, 100)

    def test_learning_path_groups_by_level(self):
        path = learning_path(advance(initial_state(), "psychology"))

        self.assertEqual([lvl["label"] for lvl in path], ["Fundamentals", "Intermediate", "Advanced"])
        self.assertEqual(len(path[0]["concepts"]), 3)
        advanced = {c["id"]: c["progress"] for c in path[2]["concepts"]}
        self.assertTrue(advanced["psychology"]["unlocked"])
        self.assertFalse(advanced["entry_signals"]["unlocked"])


class LearningPersistenceTests(SimpleTestCase):
    def test_round_trip(self):
        state = advance(advance(initial_state(), "timing"), "market_psychology")
        self.assertEqual(loads_state(dumps_state(state)), state)

    def test_missing_payload_starts_fresh(self):
        self.assertEqual(loads_state(None), initial_state())
        self.assertEqual(loads_state(""), initial_state())

    def test_corrupt_payloads_start_fresh(self):
        payloads = [
            "{not json",
            "[1, 2, 3]",
            '{"timing": 3}',
            '{"timing": {"unlocked": "yes", "interactions": 1, "mastered": false}}',
            '{"timing": {"unlocked": true, "interactions": -1, "mastered": false}}',
            # nested deeper than the decoder's recursion limit
            "[" * 200000 + "]" * 200000,
            # progress that no sequence of advances can produce
            '{"timing": {"unlocked": false, "interactions": 0, "mastered": true}}',
            '{"timing": {"unlocked": true, "interactions": 2, "mastered": true}}',
            '{"timing": {"unlocked": false, "interactions": 2, "mastered": false}}',
            '{"timing": {"unlocked": true, "interactions": 0, "mastered": false}}',
        ]
        for payload in payloads:
            with self.subTest(payload=payload[:80]):
                with self.assertLogs("analytics.learning", level="WARNING"):
                    state = loads_state(payload)
                self.assertEqual(state, initial_state())
                self.assertEqual(trading_iq(state), 0)

    def test_partial_payload_is_completed(self):
        state = loads_state('{"timing": {"unlocked": true, "interactions": 2, "mastered": false}}')
        self.assertEqual(set(state), {c.id for c in CONCEPTS})
        self.assertEqual(state["timing"].interactions, 2)


class CoachTests(SimpleTestCase):
    def test_mock_analysis_picks_review_from_trade(self):
        cases = [
            (make_trade(0, 9.5, trend="bullish"), "WIN", "risk_management"),
            (make_trade(0, -25, buy_price=25), "LOSS", "psychology"),
            (make_trade(0, -10, trend="sideways"), "LOSS", "timing"),
            (make_trade(0, -10, trend="bullish", contract_type="PUT"), "LOSS", "entry_signals"),
            (make_trade(0, -10, trend="bearish", contract_type="CALL"), "LOSS", "trend_analysis"),
        ]
        for trade, verdict, concept_id in cases:
            with self.subTest(concept_id=concept_id):
                analysis = mock_analysis(trade)
                self.assertEqual(analysis.verdict, verdict)
                self.assertEqual(analysis.concept_id, concept_id)

    def test_coaching_message_follows_risk_level(self):
        self.assertIn("CRITICAL", coaching_message(85, 10))
        self.assertIn("LOW", coaching_message(20, 10))


class ParserTests(SimpleTestCase):
    CSV = (
        b"id,entry_time,exit_time,stake,sell_price,pnl,direction,symbol,trend\n"
        b"t2,2000,2060,10,0,-10,put,R_100,Bearish\n"
        b"t1,1000,1060,10,19.5,9.5,call,R_100,bullish\n"
        b"t3,bad,3060,10,0,-10,put,R_100,bearish\n"
    )

    def test_normalize_columns_maps_synonyms(self):
        df = normalize_columns(pd.DataFrame(columns=["Stake", "PnL", "Direction", "Entry_Time"]))
        self.assertEqual(list(df.columns), ["buy_price", "profit", "contract_type", "purchase_time"])

    def test_parse_csv(self):
        df = parse_trade_file(SimpleUploadedFile("trades.csv", self.CSV))
        trades = frame_to_trades(df)

        self.assertEqual([t.transaction_id for t in trades], ["t1", "t2"])
        self.assertEqual(trades[1].contract_type, "PUT")
        self.assertEqual(trades[1].market_context.trend, "bearish")
        self.assertEqual(trades[1].market_context.volatility, "medium")
        self.assertTrue(trades[1].is_loss)

    def test_parse_json_with_nested_market_context(self):
        payload = json.dumps([
            {
                "transaction_id": "t9",
                "contract_id": 42,
                "purchase_time": 5000,
                "sell_time": 5060,
                "buy_price": 10,
                "sell_price": 0,
                "profit": -10,
                "underlying_symbol": "R_100",
                "underlying_name": "Volatility 100 Index",
                "contract_type": "CALL",
                "duration": "1m",
                "payout": 19.5,
                "market_context": {"trend": "bearish", "volatility": "high", "description": "Sharp sell-off"},
            }
        ]).encode()
        trades = frame_to_trades(parse_trade_file(SimpleUploadedFile("trades.json", payload)))

        self.assertEqual(len(trades), 1)
        self.assertEqual(trades[0].contract_id, 42)
        self.assertEqual(
            trades[0].market_context,
            MarketContext(trend="bearish", volatility="high", description="Sharp sell-off"),
        )
        self.assertEqual(mock_analysis(trades[0]).concept_id, "trend_analysis")

    def test_parse_excel(self):
        buf = io.BytesIO()
        pd.DataFrame([
            {"id": "x2", "entry_time": 2000, "exit_time": 2060, "stake": 10, "sell_price": 0,
             "pnl": -10, "direction": "PUT", "trend": "bullish", "volatility": "LOW"},
            {"id": "x1", "entry_time": 1000, "exit_time": 1060, "stake": 10, "sell_price": 19.5,
             "pnl": 9.5, "direction": "call", "trend": "bullish", "volatility": "low"},
        ]).to_excel(buf, index=False)
        trades = frame_to_trades(parse_trade_file(SimpleUploadedFile("trades.xlsx", buf.getvalue())))

        self.assertEqual([t.transaction_id for t in trades], ["x1", "x2"])
        self.assertEqual(trades[0].contract_type, "CALL")
        self.assertEqual(trades[1].market_context.volatility, "low")

    def test_rejects_unsupported_file(self):
        with self.assertRaises(ValueError):
            parse_trade_file(SimpleUploadedFile("trades.txt", b"hello"))

    def test_rejects_missing_columns(self):
        with self.assertRaisesMessage(ValueError, "Missing required columns"):
            parse_trade_file(SimpleUploadedFile("trades.csv", b"id,pnl\nt1,5\n"))
