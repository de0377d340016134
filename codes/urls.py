from django.urls import path
from .views import RedeemCodeView, ValidateCodeView, GenerateCodesView

urlpatterns = [
    path("redeem/", RedeemCodeView.as_view(), name="codes_redeem"),
    path("validate/<str:code>/", ValidateCodeView.as_view(), name="codes_validate"),
    path("generate/", GenerateCodesView.as_view(), name="codes_generate"),
]
