"""
Authentication models.
Agent is the custom User: covers Customer and Operator roles.
"""

import uuid
from django.db import models
from django.contrib.auth.models import AbstractBaseUser, PermissionsMixin, BaseUserManager


class AgentManager(BaseUserManager):
    def create_user(self, email, password=None, **extra):
        if not email:
            raise ValueError("Email is required.")
        user = self.model(email=self.normalize_email(email), **extra)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_superuser(self, email, password, **extra):
        extra.setdefault("is_staff", True)
        extra.setdefault("is_superuser", True)
        extra.setdefault("role", Agent.Role.OPERATOR)
        return self.create_user(email, password, **extra)

    def find_by_email(self, email):
        """Case-insensitive lookup used to bind new quotes and orders to existing accounts."""
        if not email:
            return None
        return self.filter(email__iexact=email.strip()).first()


class Agent(AbstractBaseUser, PermissionsMixin):
    """Every human actor in FreightDesk: identified by email."""

    class Role(models.TextChoices):
        CUSTOMER = "CUSTOMER", "Customer"
        OPERATOR = "OPERATOR", "Operator"

    id         = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    email      = models.EmailField(unique=True)
    full_name  = models.CharField(max_length=120)
    phone      = models.CharField(max_length=30, blank=True)
    company    = models.CharField(max_length=120, blank=True)
    role       = models.CharField(max_length=10, choices=Role.choices, default=Role.CUSTOMER)
    is_active  = models.BooleanField(default=True)
    is_staff   = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    USERNAME_FIELD  = "email"
    REQUIRED_FIELDS = ["full_name"]

    objects = AgentManager()

    class Meta:
        verbose_name = "Agent"
        indexes = [models.Index(fields=["role"], name="auth_agent_role_idx")]

    def __str__(self):
        return f"{self.full_name} ({self.role})"

    @property
    def is_operator(self) -> bool:
        return self.role == self.Role.OPERATOR
