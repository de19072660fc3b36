import re

from django.db import IntegrityError, transaction
from rest_framework import serializers

from main.exceptions import Conflict
from .models import User

PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 16
EMAIL_TAKEN_MESSAGE = 'Email already registered.'


def validate_password_policy(value):
    """8-16 characters, at least one uppercase letter and one special character."""
    if not PASSWORD_MIN_LENGTH <= len(value) <= PASSWORD_MAX_LENGTH:
        raise serializers.ValidationError('Password must be 8-16 characters.')
    if not re.search(r'[A-Z]', value):
        raise serializers.ValidationError('Password must contain at least one uppercase letter.')
    if not re.search(r'[^A-Za-z0-9]', value):
        raise serializers.ValidationError('Password must contain at least one special character.')
    return value


def email_in_use(email, exclude_pk=None):
    queryset = User.objects.filter(email__iexact=email)
    if exclude_pk is not None:
        queryset = queryset.exclude(pk=exclude_pk)
    return queryset.exists()


class UserSerializer(serializers.ModelSerializer):
    """Public identity of a user"""

    class Meta:
        model = User
        fields = ['id', 'name', 'email', 'address', 'role']
        read_only_fields = fields


class UserDetailSerializer(UserSerializer):
    """User detail for admins; owners also carry their store's average rating"""
    storeRating = serializers.SerializerMethodField()

    class Meta(UserSerializer.Meta):
        fields = UserSerializer.Meta.fields + ['storeRating']
        read_only_fields = fields

    def get_storeRating(self, obj):
        if not obj.is_owner:
            return None
        from stores.utils import get_owned_store
        from ratings.utils import average_rating

        store = get_owned_store(obj)
        if store is None:
            return None
        average = average_rating(store)
        return None if average is None else str(average)


class UserCreateSerializer(serializers.ModelSerializer):
    """
    Registration and admin user creation.

    Field policy: name 20-60 chars, valid email, password per
    ``validate_password_policy``, address up to 400 chars.
    """
    name = serializers.CharField(
        min_length=20, max_length=60,
        error_messages={
            'min_length': 'Name must be between 20 and 60 characters.',
            'max_length': 'Name must be between 20 and 60 characters.',
        }
    )
    email = serializers.EmailField(error_messages={'invalid': 'Email must be valid.'})
    password = serializers.CharField(write_only=True, validators=[validate_password_policy])
    address = serializers.CharField(
        max_length=400, required=False, allow_blank=True, default='',
        error_messages={'max_length': 'Address must be at most 400 characters.'}
    )
    role = serializers.ChoiceField(
        choices=User.Role.choices, required=False, default=User.Role.USER,
        error_messages={'invalid_choice': 'Role must be Admin, User, or Owner.'}
    )

    class Meta:
        model = User
        fields = ['id', 'name', 'email', 'password', 'address', 'role']
        read_only_fields = ['id']

    def validate_email(self, value):
        return User.objects.normalize_email(value)

    def create(self, validated_data):
        password = validated_data.pop('password')
        try:
            with transaction.atomic():
                if email_in_use(validated_data['email']):
                    raise Conflict(EMAIL_TAKEN_MESSAGE)
                user = User(**validated_data)
                user.set_password(password)
                user.save()
        except IntegrityError:
            raise Conflict(EMAIL_TAKEN_MESSAGE)
        return user


class UserUpdateSerializer(serializers.ModelSerializer):
    """Admin update of name/email/address/role"""
    name = serializers.CharField(
        min_length=20, max_length=60,
        error_messages={
            'min_length': 'Name must be between 20 and 60 characters.',
            'max_length': 'Name must be between 20 and 60 characters.',
        }
    )
    email = serializers.EmailField(error_messages={'invalid': 'Email must be valid.'})
    address = serializers.CharField(
        max_length=400, required=False, allow_blank=True,
        error_messages={'max_length': 'Address must be at most 400 characters.'}
    )
    role = serializers.ChoiceField(
        choices=User.Role.choices,
        error_messages={'invalid_choice': 'Role must be Admin, User, or Owner.'}
    )

    class Meta:
        model = User
        fields = ['name', 'email', 'address', 'role']

    def validate_email(self, value):
        return User.objects.normalize_email(value)

    def update(self, instance, validated_data):
        email = validated_data.get('email')
        try:
            with transaction.atomic():
                if email and email_in_use(email, exclude_pk=instance.pk):
                    raise Conflict(EMAIL_TAKEN_MESSAGE)
                return super().update(instance, validated_data)
        except IntegrityError:
            raise Conflict(EMAIL_TAKEN_MESSAGE)


class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField(error_messages={'invalid': 'Email must be valid.'})
    password = serializers.CharField(
        trim_whitespace=False,
        error_messages={'blank': 'Password is required.', 'required': 'Password is required.'}
    )


class ChangePasswordSerializer(serializers.Serializer):
    """Serializer for password change"""
    oldPassword = serializers.CharField(trim_whitespace=False)
    newPassword = serializers.CharField(trim_whitespace=False, validators=[validate_password_policy])
