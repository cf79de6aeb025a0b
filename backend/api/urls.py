from django.urls import path
from .views import AnalyzeTradeAPIView, LearningStateAPIView, RiskScoreAPIView, TradesListAPIView, UploadTradesAPIView

urlpatterns = [
    path("upload/", UploadTradesAPIView.as_view(), name="api-upload"),
    path("trades/", TradesListAPIView.as_view(), name="api-trades"),
    path("trades/<str:transaction_id>/analyze/", AnalyzeTradeAPIView.as_view(), name="api-analyze-trade"),
    path("risk/", RiskScoreAPIView.as_view(), name="api-risk"),
    path("learning/", LearningStateAPIView.as_view(), name="api-learning"),
]
