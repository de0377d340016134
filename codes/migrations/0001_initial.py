import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("distributors", "0001_initial"),
        ("payments", "0001_initial"),
        ("products", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="CodeBatch",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("credits", models.PositiveIntegerField()),
                ("quantity", models.PositiveIntegerField(default=1)),
                ("created_by", models.CharField(default="system", max_length=128)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("distributor", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="code_batches", to="distributors.distributor")),
                ("product", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="code_batches", to="products.product")),
                ("transaction", models.OneToOneField(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="code_batch", to="payments.transaction")),
            ],
            options={
                "ordering": ("-created_at",),
            },
        ),
        migrations.CreateModel(
            name="CreditCode",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("code", models.CharField(max_length=14, unique=True)),
                ("credits", models.PositiveIntegerField()),
                ("customer_email", models.EmailField(blank=True, max_length=254, null=True)),
                ("purchase_price", models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ("wholesale_price", models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ("expires_at", models.DateTimeField()),
                ("is_redeemed", models.BooleanField(default=False)),
                ("redeemed_at", models.DateTimeField(blank=True, null=True)),
                ("redeemed_by", models.CharField(blank=True, max_length=254, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("batch", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="codes", to="codes.codebatch")),
                ("distributor", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="credit_codes", to="distributors.distributor")),
                ("product", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="credit_codes", to="products.product")),
            ],
            options={
                "ordering": ("-created_at",),
                "indexes": [
                    models.Index(fields=["is_redeemed", "expires_at"], name="code_redeemed_expires_idx"),
                    models.Index(fields=["customer_email"], name="code_customer_email_idx"),
                ],
            },
        ),
    ]
