from django.urls import path

from .views import InboundMessageWebhookView

app_name = "pointsman"

urlpatterns = [
    path("webhooks/whatsapp/", InboundMessageWebhookView.as_view(), name="whatsapp-webhook"),
]
