from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Trade",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("transaction_id", models.CharField(db_index=True, max_length=64)),
                ("contract_id", models.BigIntegerField(default=0)),
                ("purchase_time", models.BigIntegerField(db_index=True)),
                ("sell_time", models.BigIntegerField()),
                ("buy_price", models.FloatField(help_text="Stake paid for the contract")),
                ("sell_price", models.FloatField()),
                ("profit", models.FloatField(help_text="Realized profit (can be negative)")),
                ("underlying_symbol", models.CharField(blank=True, default="", max_length=50)),
                ("underlying_name", models.CharField(blank=True, default="", max_length=100)),
                ("contract_type", models.CharField(choices=[("CALL", "CALL"), ("PUT", "PUT")], max_length=4)),
                ("duration", models.CharField(blank=True, default="", max_length=32)),
                ("payout", models.FloatField(default=0.0)),
                (
                    "trend",
                    models.CharField(
                        choices=[("bullish", "bullish"), ("bearish", "bearish"), ("sideways", "sideways")],
                        default="sideways",
                        max_length=8,
                    ),
                ),
                (
                    "volatility",
                    models.CharField(
                        choices=[("low", "low"), ("medium", "medium"), ("high", "high")],
                        default="medium",
                        max_length=6,
                    ),
                ),
                ("context_description", models.TextField(blank=True, default="")),
                ("batch_id", models.CharField(blank=True, db_index=True, default="", max_length=64)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
        ),
    ]
