"""Actor resolution gates consumed by the ledger views."""

from rest_framework.permissions import BasePermission


class IsOperator(BasePermission):
    message = "Operator only."

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and getattr(user, "is_operator", False))


def actor_label(user) -> str:
    """Identity recorded on status-history entries."""
    if user is None or not getattr(user, "is_authenticated", False):
        return "system"
    return user.full_name or user.email


def scope_to_actor(queryset, user):
    """Operators see everything; customers see only records bound to their account."""
    if getattr(user, "is_operator", False):
        return queryset
    return queryset.filter(customer=user)
