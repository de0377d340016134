from django.contrib import admin
from django.urls import path, include
from django.http import JsonResponse

# JWT Auth
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

# DRF Spectacular (API docs)
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView

from codes.views import PublicStatsView


def health_view(_request):
    return JsonResponse({"status": "ok", "app": "GroupSpark", "version": "1.0"})


urlpatterns = [
    # --- Admin ---
    path("admin/", admin.site.urls),

    # --- JWT Authentication ---
    path("api/token/", TokenObtainPairView.as_view(), name="token_obtain_pair"),
    path("api/token/refresh/", TokenRefreshView.as_view(), name="token_refresh"),

    # --- Catalogue ---
    path("api/products/", include("products.urls")),

    # --- Payments (Stripe intents, confirm, webhook) ---
    path("api/payments/", include("payments.urls")),

    # --- Credit codes ---
    path("api/codes/", include("codes.urls")),
    path("api/distributors/", include("distributors.urls")),
    path("api/stats/", PublicStatsView.as_view(), name="public_stats"),

    # --- Health ---
    path("api/health/", health_view, name="health"),

    # --- API Schema + Docs ---
    path("api/schema/", SpectacularAPIView.as_view(), name="schema"),
    path("api/docs/", SpectacularSwaggerView.as_view(url_name="schema"), name="swagger-ui"),
]
