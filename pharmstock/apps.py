"""Django app configuration for Pharmstock."""

from django.apps import AppConfig
from django.utils.translation import gettext_lazy as _


class PharmstockConfig(AppConfig):
    """Configuration for Pharmstock app."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "pharmstock"
    verbose_name = _("Estoque de Farmácia")
