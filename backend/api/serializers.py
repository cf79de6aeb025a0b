from rest_framework import serializers
from .models import Trade

class TradeSerializer(serializers.ModelSerializer):
    class Meta:
        model = Trade
        fields = [
            "id","transaction_id","contract_id","purchase_time","sell_time","buy_price","sell_price",
            "profit","underlying_symbol","underlying_name","contract_type","duration","payout",
            "trend","volatility","context_description","batch_id"
        ]
