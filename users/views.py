import logging
from datetime import timedelta

from django.conf import settings
from django.contrib.auth import authenticate
from django.utils import timezone
from oauth2_provider.models import AccessToken, Application
from oauthlib.common import generate_token
from rest_framework import generics, status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from django_filters.rest_framework import DjangoFilterBackend

from main.exceptions import InvalidCredentials
from .filters import SortByFilter, UserFilter
from .models import User
from .permissions import IsAdmin, IsOwner, IsStoreUser
from .serializers import (
    ChangePasswordSerializer, LoginSerializer, UserCreateSerializer, UserDetailSerializer,
    UserSerializer, UserUpdateSerializer
)
from .utils import delete_user_with_dependents, deletion_message

logger = logging.getLogger(__name__)


def get_oauth_application():
    application, _ = Application.objects.get_or_create(
        name=settings.OAUTH2_APPLICATION_NAME,
        defaults={
            'client_type': Application.CLIENT_PUBLIC,
            'authorization_grant_type': Application.GRANT_PASSWORD,
        }
    )
    return application


def issue_access_token(user):
    """Create a bearer token for the user, valid for ACCESS_TOKEN_EXPIRE_SECONDS."""
    expires = timezone.now() + timedelta(seconds=settings.ACCESS_TOKEN_EXPIRE_SECONDS)
    return AccessToken.objects.create(
        user=user,
        application=get_oauth_application(),
        token=generate_token(),
        expires=expires,
        scope='read write'
    )


def get_bearer_token(request):
    auth_header = request.META.get('HTTP_AUTHORIZATION', '')
    if auth_header.startswith('Bearer '):
        return auth_header.split(' ', 1)[1].strip()
    return None


@api_view(['POST'])
@permission_classes([AllowAny])
def register_view(request):
    """Self-service registration. Role defaults to User."""
    serializer = UserCreateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    user = serializer.save()
    logger.info(f"Registered user {user.email} ({user.role})")
    return Response(
        {'message': 'User registered successfully.', 'user': UserSerializer(user).data},
        status=status.HTTP_201_CREATED
    )


@api_view(['POST'])
@permission_classes([AllowAny])
def login_view(request):
    """
    Exchange email and password for a bearer token.
    Unknown email and wrong password give the same response.
    """
    if not request.data.get('email') or not request.data.get('password'):
        return Response(
            {'message': 'Email and password are required.'},
            status=status.HTTP_400_BAD_REQUEST
        )

    serializer = LoginSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    email = User.objects.normalize_email(serializer.validated_data['email'])
    user = authenticate(request, email=email, password=serializer.validated_data['password'])
    if user is None:
        logger.warning(f"Failed login attempt for {email}")
        raise InvalidCredentials()

    access_token = issue_access_token(user)

    return Response({
        'token': access_token.token,
        'token_type': 'Bearer',
        'expires_in': settings.ACCESS_TOKEN_EXPIRE_SECONDS,
        'user': {
            'id': user.id,
            'name': user.name,
            'email': user.email,
            'role': user.role,
        }
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def logout_view(request):
    """Revoke the presented token"""
    token_string = get_bearer_token(request)
    if token_string:
        AccessToken.objects.filter(token=token_string).delete()
    return Response({'message': 'Logged out successfully.'})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def current_user_view(request):
    """Get current authenticated user details"""
    return Response(UserSerializer(request.user).data)


def change_password(request):
    """Replace the caller's password after checking the old one."""
    if not request.data.get('oldPassword') or not request.data.get('newPassword'):
        return Response(
            {'message': 'Old and new passwords are required.'},
            status=status.HTTP_400_BAD_REQUEST
        )

    serializer = ChangePasswordSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    user = request.user
    if not user.check_password(serializer.validated_data['oldPassword']):
        raise InvalidCredentials('Old password is incorrect.')

    user.set_password(serializer.validated_data['newPassword'])
    user.save(update_fields=['password'])
    logger.info(f"Password updated for {user.email}")
    return Response({'message': 'Password updated successfully.'})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdmin])
def admin_update_password_view(request):
    return change_password(request)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsOwner])
def owner_update_password_view(request):
    return change_password(request)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsStoreUser])
def user_update_password_view(request):
    return change_password(request)


class UserListCreateView(generics.ListCreateAPIView):
    """List users with filters, or create a user (Admin only)"""
    queryset = User.objects.all()
    permission_classes = [IsAuthenticated, IsAdmin]
    filter_backends = [DjangoFilterBackend, SortByFilter]
    filterset_class = UserFilter
    ordering_fields = ['name', 'email']
    ordering = 'name'

    def get_serializer_class(self):
        if self.request.method == 'POST':
            return UserCreateSerializer
        return UserSerializer

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = serializer.save()
        logger.info(f"Admin {request.user.email} created user {user.email} ({user.role})")
        return Response(
            {'message': 'User created successfully.', 'user': UserSerializer(user).data},
            status=status.HTTP_201_CREATED
        )


class UserDetailView(generics.RetrieveUpdateDestroyAPIView):
    """Retrieve, update or delete a user (Admin only)"""
    queryset = User.objects.all()
    permission_classes = [IsAuthenticated, IsAdmin]

    def get_serializer_class(self):
        if self.request.method in ['PUT', 'PATCH']:
            return UserUpdateSerializer
        return UserDetailSerializer

    def update(self, request, *args, **kwargs):
        partial = kwargs.pop('partial', False)
        instance = self.get_object()
        serializer = self.get_serializer(instance, data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        user = serializer.save()
        return Response({'message': 'User updated successfully.', 'user': UserSerializer(user).data})

    def destroy(self, request, *args, **kwargs):
        """
        Delete the user and everything depending on them.
        Owners lose their stores (and those stores' ratings) as well.
        """
        summary = delete_user_with_dependents(self.get_object())
        return Response({
            'message': deletion_message(summary),
            'deletedData': summary,
        })
