"""
Django application configuration for the organizations app.

Organizations are the tenant boundary of Workbench: membership with a
system role, magic link invitations and the super admin console live here.
"""

from django.apps import AppConfig


class OrganizationsConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'organizations'
    verbose_name = 'Organization Management'
