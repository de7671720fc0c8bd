"""Authentication: registration, login, profile."""

import re
from django.contrib.auth import get_user_model
from rest_framework import generics, status
from rest_framework.response import Response
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework_simplejwt.views import TokenObtainPairView
from rest_framework import serializers
from drf_spectacular.utils import extend_schema

Agent = get_user_model()

# ── Validators ────────────────────────────────────────────────────────────────
PHONE_PATTERN = re.compile(r"^\+?[\d\s\-()]{7,20}$")


def validate_phone(value):
    if value and not PHONE_PATTERN.match(value):
        raise serializers.ValidationError("Enter a valid phone number.")


# ── Serializers ───────────────────────────────────────────────────────────────
class AgentRegisterSerializer(serializers.ModelSerializer):
    password = serializers.CharField(write_only=True, min_length=8)
    phone    = serializers.CharField(required=False, allow_blank=True, validators=[validate_phone])

    class Meta:
        model  = Agent
        fields = ["email", "full_name", "phone", "company", "password"]

    def validate_email(self, value):
        if Agent.objects.find_by_email(value):
            raise serializers.ValidationError("An account with this email already exists.")
        return value

    def create(self, validated_data):
        # Self-registration always yields a customer; operators are provisioned by admins
        password = validated_data.pop("password")
        agent = Agent(role=Agent.Role.CUSTOMER, **validated_data)
        agent.set_password(password)
        agent.save()
        return agent


class AgentProfileSerializer(serializers.ModelSerializer):
    class Meta:
        model  = Agent
        fields = ["id", "email", "full_name", "phone", "company", "role", "created_at"]
        read_only_fields = ["id", "email", "role", "created_at"]


# ── Views ─────────────────────────────────────────────────────────────────────
@extend_schema(tags=["Auth"])
class RegisterView(generics.CreateAPIView):
    """POST /api/auth/register/: Create a new customer account."""
    queryset         = Agent.objects.all()
    serializer_class = AgentRegisterSerializer
    permission_classes = [AllowAny]

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        agent = serializer.save()
        return Response(
            {"message": "Account created. Please log in.", "id": str(agent.id)},
            status=status.HTTP_201_CREATED,
        )


@extend_schema(tags=["Auth"])
class LoginView(TokenObtainPairView):
    """POST /api/auth/login/: Exchange email + password for a JWT pair."""


@extend_schema(tags=["Auth"])
class ProfileView(generics.RetrieveUpdateAPIView):
    """GET/PATCH /api/auth/me/: Retrieve or update own profile."""
    serializer_class   = AgentProfileSerializer
    permission_classes = [IsAuthenticated]

    def get_object(self):
        return self.request.user
