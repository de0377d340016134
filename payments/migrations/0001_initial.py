import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("distributors", "0001_initial"),
        ("products", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="ProcessedEvent",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("event_id", models.CharField(max_length=128, unique=True)),
                ("event_type", models.CharField(max_length=64)),
                ("outcome", models.CharField(blank=True, default="", max_length=32)),
                ("processed_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "ordering": ("-processed_at",),
            },
        ),
        migrations.CreateModel(
            name="ProviderLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("provider", models.CharField(default="stripe", max_length=32)),
                ("endpoint", models.CharField(max_length=128)),
                ("reference", models.CharField(blank=True, db_index=True, max_length=128, null=True)),
                ("request_payload", models.JSONField(blank=True, default=dict)),
                ("response_payload", models.JSONField(blank=True, default=dict)),
                ("status_code", models.CharField(max_length=10)),
                ("error_message", models.CharField(blank=True, max_length=255, null=True)),
                ("timestamp", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "ordering": ("-timestamp",),
                "indexes": [
                    models.Index(fields=["provider", "timestamp"], name="providerlog_provider_ts_idx"),
                    models.Index(fields=["status_code", "timestamp"], name="providerlog_status_ts_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Transaction",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("kind", models.CharField(choices=[("purchase", "Purchase")], default="purchase", max_length=16)),
                ("amount", models.DecimalField(decimal_places=2, max_digits=12)),
                ("currency", models.CharField(default="usd", max_length=8)),
                ("credits", models.PositiveIntegerField()),
                ("customer_email", models.EmailField(max_length=254)),
                ("external_payment_ref", models.CharField(blank=True, max_length=128, null=True, unique=True)),
                ("idempotency_key", models.CharField(max_length=64, unique=True)),
                ("client_secret", models.CharField(blank=True, default="", max_length=255)),
                ("status", models.CharField(choices=[("pending", "Pending"), ("completed", "Completed"), ("failed", "Failed")], db_index=True, default="pending", max_length=16)),
                ("metadata", models.JSONField(blank=True, default=dict)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
                ("distributor", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="transactions", to="distributors.distributor")),
                ("package", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="transactions", to="products.creditpackage")),
                ("product", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="transactions", to="products.product")),
            ],
            options={
                "ordering": ("-created_at",),
                "indexes": [
                    models.Index(fields=["status", "created_at"], name="txn_status_created_idx"),
                    models.Index(fields=["customer_email", "created_at"], name="txn_email_created_idx"),
                ],
            },
        ),
    ]
