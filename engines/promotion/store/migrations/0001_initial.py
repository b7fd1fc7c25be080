import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="PromotionRecord",
            fields=[
                ("promotion_id", models.CharField(max_length=64, primary_key=True, serialize=False)),
                ("business_id", models.CharField(max_length=64)),
                ("name", models.CharField(max_length=255)),
                (
                    "promotion_type",
                    models.CharField(
                        choices=[
                            ("PERCENTAGE", "Percentage"),
                            ("FIXED", "Fixed amount"),
                            ("BUY_X_GET_Y", "Buy X get Y"),
                            ("BUNDLE", "Bundle price"),
                            ("THRESHOLD", "Spend threshold"),
                        ],
                        max_length=20,
                    ),
                ),
                (
                    "value",
                    models.DecimalField(
                        decimal_places=2,
                        default=0,
                        help_text="Percent points, flat amount, get-discount percent or bundle price.",
                        max_digits=14,
                    ),
                ),
                ("buy_qty", models.PositiveIntegerField(blank=True, null=True)),
                ("get_qty", models.PositiveIntegerField(blank=True, null=True)),
                ("get_discount_percent", models.DecimalField(blank=True, decimal_places=2, max_digits=5, null=True)),
                ("bundle_price", models.DecimalField(blank=True, decimal_places=2, max_digits=14, null=True)),
                ("min_order_amount", models.DecimalField(decimal_places=2, default=0, max_digits=14)),
                ("max_discount", models.DecimalField(blank=True, decimal_places=2, max_digits=14, null=True)),
                ("usage_limit", models.PositiveIntegerField(blank=True, null=True)),
                ("usage_count", models.PositiveIntegerField(default=0)),
                ("per_customer_limit", models.PositiveIntegerField(blank=True, null=True)),
                ("starts_at", models.DateTimeField(blank=True, null=True)),
                ("ends_at", models.DateTimeField(blank=True, null=True)),
                ("is_active", models.BooleanField(default=True)),
                (
                    "scope_kind",
                    models.CharField(
                        choices=[
                            ("ALL", "All items"),
                            ("CATEGORY", "Category"),
                            ("PRODUCTS", "Product list"),
                        ],
                        default="ALL",
                        max_length=20,
                    ),
                ),
                ("scope_category", models.CharField(blank=True, default="", max_length=255)),
                ("scope_product_ids", models.JSONField(blank=True, default=list)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "db_table": "promotion_promotions",
                "ordering": ["promotion_id"],
                "indexes": [
                    models.Index(fields=["business_id", "is_active"], name="idx_promo_biz_active"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(
                            ("usage_limit__isnull", True),
                            ("usage_count__lte", models.F("usage_limit")),
                            _connector="OR",
                        ),
                        name="ck_promo_usage_within_limit",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="CustomerRedemption",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("customer_id", models.CharField(max_length=64)),
                ("redemption_count", models.PositiveIntegerField(default=0)),
                (
                    "promotion",
                    models.ForeignKey(
                        db_column="promotion_id",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="customer_redemptions",
                        to="promotion_store.promotionrecord",
                    ),
                ),
            ],
            options={
                "db_table": "promotion_customer_redemptions",
                "ordering": ["promotion_id", "customer_id"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("promotion", "customer_id"),
                        name="uq_promo_customer",
                    ),
                ],
            },
        ),
    ]
