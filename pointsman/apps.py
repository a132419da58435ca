from django.apps import AppConfig
from django.utils.translation import gettext_lazy as _


class PointsmanConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "pointsman"
    verbose_name = _("Pointsman - Programa de Fidelidad")
