from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from rest_framework import serializers

from main.exceptions import Conflict
from ratings.utils import round_average
from .models import Store
from .utils import resolve_owner_for_email

User = get_user_model()

STORE_EMAIL_TAKEN_MESSAGE = 'Store email already registered.'


class StoreSerializer(serializers.ModelSerializer):
    """Store with its average rating (``avg_rating`` annotation)"""
    ownerId = serializers.IntegerField(source='owner_id', read_only=True)
    avgRating = serializers.SerializerMethodField()

    class Meta:
        model = Store
        fields = ['id', 'name', 'email', 'address', 'ownerId', 'avgRating']
        read_only_fields = fields

    def get_avgRating(self, obj):
        average = round_average(getattr(obj, 'avg_rating', None))
        return None if average is None else str(average)


class StoreWithUserRatingSerializer(StoreSerializer):
    """Store row for the rating user, including their own rating (``user_rating``)"""
    userRating = serializers.IntegerField(source='user_rating', read_only=True, default=None)

    class Meta(StoreSerializer.Meta):
        fields = StoreSerializer.Meta.fields + ['userRating']
        read_only_fields = fields


class OwnerStoreSerializer(serializers.ModelSerializer):
    class Meta:
        model = Store
        fields = ['id', 'name', 'email', 'address']
        read_only_fields = fields


class StoreCreateUpdateSerializer(serializers.ModelSerializer):
    """
    Admin create/update of a store.

    Without ``ownerId`` an ownerless store is linked to the Owner whose email
    matches the store email.
    """
    name = serializers.CharField(
        min_length=1, max_length=100,
        error_messages={
            'blank': 'Store name must be between 1 and 100 characters.',
            'max_length': 'Store name must be between 1 and 100 characters.',
        }
    )
    email = serializers.EmailField(
        required=False, allow_null=True, allow_blank=True,
        error_messages={'invalid': 'Store email must be valid.'}
    )
    address = serializers.CharField(
        min_length=1, max_length=400,
        error_messages={
            'blank': 'Address is required and must be at most 400 characters.',
            'required': 'Address is required and must be at most 400 characters.',
            'max_length': 'Address is required and must be at most 400 characters.',
        }
    )
    ownerId = serializers.PrimaryKeyRelatedField(
        source='owner',
        queryset=User.objects.all(),
        required=False,
        allow_null=True
    )

    class Meta:
        model = Store
        fields = ['id', 'name', 'email', 'address', 'ownerId']
        read_only_fields = ['id']

    def validate_email(self, value):
        return value or None

    def validate_ownerId(self, value):
        if value is not None and not value.is_owner:
            raise serializers.ValidationError('Store owner must have the Owner role.')
        return value

    def _check_email_free(self, email, exclude_pk=None):
        if not email:
            return
        queryset = Store.objects.filter(email__iexact=email)
        if exclude_pk is not None:
            queryset = queryset.exclude(pk=exclude_pk)
        if queryset.exists():
            raise Conflict(STORE_EMAIL_TAKEN_MESSAGE)

    def create(self, validated_data):
        if 'owner' not in validated_data:
            validated_data['owner'] = resolve_owner_for_email(validated_data.get('email'))
        try:
            with transaction.atomic():
                self._check_email_free(validated_data.get('email'))
                return super().create(validated_data)
        except IntegrityError:
            raise Conflict(STORE_EMAIL_TAKEN_MESSAGE)

    def update(self, instance, validated_data):
        if 'owner' not in validated_data and instance.owner_id is None:
            validated_data['owner'] = resolve_owner_for_email(
                validated_data.get('email', instance.email)
            )
        try:
            with transaction.atomic():
                self._check_email_free(validated_data.get('email'), exclude_pk=instance.pk)
                return super().update(instance, validated_data)
        except IntegrityError:
            raise Conflict(STORE_EMAIL_TAKEN_MESSAGE)
