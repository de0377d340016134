from django.core.validators import MinValueValidator
from django.db import models
from decimal import Decimal


class Product(models.Model):
    STATUS_ACTIVE = "active"
    STATUS_COMING_SOON = "coming_soon"
    STATUS_INACTIVE = "inactive"
    STATUS_CHOICES = [
        (STATUS_ACTIVE, "Active"),
        (STATUS_COMING_SOON, "Coming soon"),
        (STATUS_INACTIVE, "Inactive"),
    ]

    name = models.CharField(max_length=120)
    description = models.TextField(blank=True)
    # action -> credits it costs, e.g. {"translate_minute": 2}
    credit_costs = models.JSONField(default=dict, blank=True)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_COMING_SOON)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ("-created_at",)

    def __str__(self):
        return f"{self.name} [{self.status}]"

    @property
    def is_active(self) -> bool:
        return self.status == self.STATUS_ACTIVE


class CreditPackage(models.Model):
    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name="packages")
    name = models.CharField(max_length=120)
    credits = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    price = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(Decimal("0.01"))])
    bonus_percent = models.PositiveSmallIntegerField(default=0)
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ("price",)
        constraints = [
            models.CheckConstraint(condition=models.Q(credits__gt=0), name="package_credits_positive"),
            models.CheckConstraint(condition=models.Q(price__gt=0), name="package_price_positive"),
        ]

    def __str__(self):
        return f"{self.product.name} | {self.name} | {self.credits} credits @ {self.price}"
