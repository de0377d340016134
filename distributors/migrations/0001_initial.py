import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("products", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Distributor",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=120)),
                ("status", models.CharField(choices=[("pending", "Pending"), ("approved", "Approved"), ("suspended", "Suspended")], default="pending", max_length=16)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("owner", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="distributors", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "ordering": ("name",),
            },
        ),
        migrations.CreateModel(
            name="InventoryRecord",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("credits_available", models.PositiveIntegerField(default=0)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("distributor", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="inventory", to="distributors.distributor")),
                ("product", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="inventory_records", to="products.product")),
            ],
            options={
                "constraints": [
                    models.UniqueConstraint(fields=("distributor", "product"), name="inventory_distributor_product_unique"),
                    models.CheckConstraint(condition=models.Q(("credits_available__gte", 0)), name="inventory_never_negative"),
                ],
            },
        ),
    ]
