"""
Model registration for migrations: import all models that should be migrated by Alembic here.
When adding/removing apps, add/remove the corresponding imports here.
"""
from apps.profiles.models import Profile
from apps.works.models import Work
from apps.clients.models import ClientDetails, AuthorizationCode
from apps.notifications.models import Notification

__all__ = ["Profile", "Work", "ClientDetails", "AuthorizationCode", "Notification"]
