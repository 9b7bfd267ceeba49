import logging

from django.shortcuts import get_object_or_404
from rest_framework import generics, status
from rest_framework.exceptions import ValidationError
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.tokens import RefreshToken
from rest_framework_simplejwt.views import TokenObtainPairView

from .models import User
from .permissions import IsMarketplaceAdmin
from .serializers import (
    AdminUserSerializer,
    EmailTokenObtainPairSerializer,
    ProfileUpdateSerializer,
    RegisterSerializer,
    UserSerializer,
    UserStatusSerializer,
)

logger = logging.getLogger(__name__)


class RegisterView(APIView):
    """Create a new user account and issue an initial JWT pair."""

    permission_classes = [AllowAny]

    def post(self, request, *args, **kwargs):
        serializer = RegisterSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = serializer.save()
        refresh = RefreshToken.for_user(user)
        return Response(
            {
                "user": UserSerializer(user).data,
                "access": str(refresh.access_token),
                "refresh": str(refresh),
            },
            status=status.HTTP_201_CREATED,
        )


class LoginView(TokenObtainPairView):
    """Authenticate an existing user via email + password."""

    serializer_class = EmailTokenObtainPairSerializer


class MeView(APIView):
    """Return the serialized profile for the current authenticated user."""

    def get(self, request, *args, **kwargs):
        return Response(UserSerializer(request.user).data)

    def patch(self, request, *args, **kwargs):
        serializer = ProfileUpdateSerializer(
            instance=request.user, data=request.data, partial=True
        )
        serializer.is_valid(raise_exception=True)
        user = serializer.save()
        return Response(UserSerializer(user).data)


class AdminUserListView(generics.ListAPIView):
    """All accounts, optionally narrowed to one role."""

    serializer_class = AdminUserSerializer
    permission_classes = [IsMarketplaceAdmin]

    def get_queryset(self):
        queryset = User.objects.order_by("-date_joined", "-id")
        role = self.request.query_params.get("role")
        if role:
            queryset = queryset.filter(role=role)
        return queryset


class AdminUserStatusView(APIView):
    """Activate or deactivate an account. Admins cannot be deactivated here."""

    permission_classes = [IsMarketplaceAdmin]

    def put(self, request, user_id, *args, **kwargs):
        serializer = UserStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        action = serializer.validated_data["action"]

        if user_id == request.user.pk:
            raise ValidationError({"detail": "You cannot change the status of your own account."})
        user = get_object_or_404(User, pk=user_id)
        if action == UserStatusSerializer.DEACTIVATE and user.is_marketplace_admin:
            raise ValidationError({"detail": "Admin accounts cannot be deactivated."})

        user.is_active = action == UserStatusSerializer.ACTIVATE
        user.save(update_fields=["is_active"])
        logger.info(
            "User %s %sd by admin %s: %s",
            user.pk,
            action,
            request.user.pk,
            serializer.validated_data.get("reason", ""),
        )
        return Response(AdminUserSerializer(user).data)
